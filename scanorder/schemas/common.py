from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Any, Optional


class CamelModel(BaseModel):
    """Python attributes in snake_case, camelCase on the wire and in storage."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def wire(self, **kw) -> dict:
        return self.model_dump(mode="json", by_alias=True, **kw)


class TableSession(CamelModel):
    table_id: str
    table_number: str
    restaurant_name: str = "Restaurant"
    restaurant_id: Optional[str] = None
    placeholder: bool = False  # randomly generated, not a scanned table


class GuestTokenIn(CamelModel):
    table_id: Optional[str] = None
    device_id: str


class GuestTokenOut(CamelModel):
    success: bool
    token: Optional[str] = None
    message: Optional[str] = None


class LoginIn(CamelModel):
    email: str
    password: str


class RegisterIn(LoginIn):
    name: str
    phone: Optional[str] = None


class AuthOut(CamelModel):
    success: bool
    token: Optional[str] = None
    user: Optional[dict[str, Any]] = None
    message: Optional[str] = None


class MeOut(CamelModel):
    success: bool = False
    user: Optional[dict[str, Any]] = None
    token: Optional[str] = None
