"""
client/stores.py
-----------------
In-memory stores for the lists the CLI works with.

Each store holds the last fetched list in `items` and re-fetches it with
`refresh()`. Mutations go through the API client and refresh the list
afterwards, so `items` always mirrors what the server returned last.
"""

from __future__ import annotations

from typing import Any, Callable

from client.api_client import ApiClient


class DuplicateNameError(ValueError):
    """Raised by GroupStore when a group with the same name already exists."""


class ListStore:
    def __init__(self, api: ApiClient) -> None:
        self.api = api
        self.items: list[dict[str, Any]] = []
        self.loaded = False

    def fetch(self) -> list[dict[str, Any]]:
        raise NotImplementedError

    def refresh(self) -> list[dict[str, Any]]:
        self.items = self.fetch() or []
        self.loaded = True
        return self.items

    def ensure_loaded(self) -> list[dict[str, Any]]:
        if not self.loaded:
            self.refresh()
        return self.items

    def get(self, item_id: str) -> dict[str, Any] | None:
        return next((item for item in self.ensure_loaded() if item.get("id") == item_id), None)

    def _mutate(self, call: Callable[..., Any], *args) -> Any:
        result = call(*args)
        self.refresh()
        return result


class GroupStore(ListStore):
    def fetch(self):
        return self.api.list_groups()

    @staticmethod
    def _normalise(name: str) -> str:
        return " ".join(str(name).split()).lower()

    def name_taken(self, name: str, exclude_id: str | None = None) -> bool:
        wanted = self._normalise(name)
        return any(
            self._normalise(g.get("name", "")) == wanted and g.get("id") != exclude_id
            for g in self.refresh()
        )

    def create(self, data: dict) -> dict:
        # duplicate names are only rejected here, not by the server
        if self.name_taken(data.get("name", "")):
            raise DuplicateNameError(f"A group named '{data.get('name')}' already exists")
        return self._mutate(self.api.create_group, data)

    def update(self, group_id: str, data: dict) -> dict:
        if data.get("name") and self.name_taken(data["name"], exclude_id=group_id):
            raise DuplicateNameError(f"A group named '{data.get('name')}' already exists")
        return self._mutate(self.api.update_group, group_id, data)

    def delete(self, group_id: str) -> Any:
        return self._mutate(self.api.delete_group, group_id)


class SubjectStore(ListStore):
    def fetch(self):
        return self.api.list_subjects()

    def create(self, data: dict) -> dict:
        return self._mutate(self.api.create_subject, data)

    def update(self, subject_id: str, data: dict) -> dict:
        return self._mutate(self.api.update_subject, subject_id, data)

    def delete(self, subject_id: str) -> Any:
        return self._mutate(self.api.delete_subject, subject_id)


class VenueStore(ListStore):
    def fetch(self):
        return self.api.list_venues()

    def create(self, data: dict) -> dict:
        return self._mutate(self.api.create_venue, data)

    def update(self, venue_id: str, data: dict) -> dict:
        return self._mutate(self.api.update_venue, venue_id, data)

    def delete(self, venue_id: str) -> Any:
        return self._mutate(self.api.delete_venue, venue_id)


class TimetableStore(ListStore):
    def __init__(self, api: ApiClient, group: str | None = None) -> None:
        super().__init__(api)
        self.group = group

    def fetch(self):
        return self.api.list_timetables(group=self.group)

    def create(self, data: dict) -> dict:
        return self._mutate(self.api.create_timetable, data)

    def update(self, timetable_id: str, data: dict) -> dict:
        return self._mutate(self.api.update_timetable, timetable_id, data)

    def delete(self, timetable_id: str) -> Any:
        return self._mutate(self.api.delete_timetable, timetable_id)

    def add_slot(self, timetable_id: str, data: dict) -> dict:
        return self._mutate(self.api.add_slot, timetable_id, data)

    def delete_slot(self, timetable_id: str, slot_id: str) -> dict:
        return self._mutate(self.api.delete_slot, timetable_id, slot_id)
