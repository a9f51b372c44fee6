from .cart import CartStore  # noqa: F401
from .favorites import FavoritesStore  # noqa: F401
from .loyalty import LoyaltyStore  # noqa: F401
from .orders import OrdersStore  # noqa: F401
from .table import TableStore  # noqa: F401
