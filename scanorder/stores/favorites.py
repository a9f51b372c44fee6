from scanorder.storage import LocalStorage

FAVORITES_KEY = "favorites"


class FavoritesStore:
    def __init__(self, storage: LocalStorage):
        self.storage = storage
        raw = storage.get_json(FAVORITES_KEY, [])
        self._ids: list[str] = [str(x) for x in raw] if isinstance(raw, list) else []

    def _save(self) -> None:
        self.storage.set_json(FAVORITES_KEY, self._ids)

    @property
    def favorites(self) -> list[str]:
        return list(self._ids)

    def is_favorite(self, item_id: str) -> bool:
        return item_id in self._ids

    def add(self, item_id: str) -> None:
        if item_id not in self._ids:
            self._ids.append(item_id)
            self._save()

    def remove(self, item_id: str) -> None:
        if item_id in self._ids:
            self._ids.remove(item_id)
            self._save()

    def toggle(self, item_id: str) -> bool:
        """Flip the item and return whether it is now a favorite."""
        if self.is_favorite(item_id):
            self.remove(item_id)
            return False
        self.add(item_id)
        return True

    def clear(self) -> None:
        self._ids = []
        self.storage.remove_item(FAVORITES_KEY)
