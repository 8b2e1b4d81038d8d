"""
In-memory KeyValueStorage for testing — no database required.
"""

from booking_client.domain.cache import KeyValueStorage


class InMemoryStorage(KeyValueStorage):
    """
    Test helpers:
        fail_writes   — when True, set_item() raises like a full disk/quota
        items         — the raw string map, for asserting on what was stored
    """

    def __init__(self):
        self.items: dict[str, str] = {}
        self.fail_writes = False

    def get_item(self, key: str) -> str | None:
        return self.items.get(key)

    def set_item(self, key: str, value: str) -> None:
        if self.fail_writes:
            raise OSError("storage quota exceeded")
        self.items[key] = value

    def remove_item(self, key: str) -> None:
        self.items.pop(key, None)

    def keys(self) -> list[str]:
        return list(self.items)
