import math
from types import SimpleNamespace

from src.housecall.models.domain import Coordinate
from src.housecall.services.geospatial import EARTH_RADIUS_KM

CAPE_TOWN = Coordinate(latitude=-33.9249, longitude=18.4241)


def north_of(origin: Coordinate, km: float) -> Coordinate:
    """A point `km` kilometres due north of origin along the meridian."""
    return Coordinate(
        latitude=origin.latitude + math.degrees(km / EARTH_RADIUS_KM),
        longitude=origin.longitude,
    )


class FakeQuery:
    def __init__(self, client: "FakeSupabase", table: str):
        self.client = client
        self.table = table
        self.operation = "select"
        self.payload = None
        self.filters: list[tuple] = []

    def select(self, *args, **kwargs):
        return self

    def insert(self, payload):
        self.operation = "insert"
        self.payload = payload
        return self

    def update(self, payload):
        self.operation = "update"
        self.payload = payload
        return self

    def delete(self):
        self.operation = "delete"
        return self

    def eq(self, column, value):
        self.filters.append(("eq", column, value))
        return self

    def is_(self, column, value):
        self.filters.append(("is", column, value))
        return self

    def in_(self, column, values):
        self.filters.append(("in", column, tuple(values)))
        return self

    @property
    def not_(self):
        self.filters.append(("not",))
        return self

    def order(self, *args, **kwargs):
        return self

    def limit(self, *args):
        return self

    def execute(self):
        self.client.executed.append(self)
        if self.operation == "insert":
            rows = self.payload if isinstance(self.payload, list) else [self.payload]
            stored = []
            for row in rows:
                self.client.counter += 1
                stored.append({"id": f"{self.table}-{self.client.counter}", **row})
            self.client.rows.setdefault(self.table, []).extend(stored)
            return SimpleNamespace(data=stored, count=len(stored))
        if self.operation in ("update", "delete"):
            return SimpleNamespace(data=[], count=0)
        rows = list(self.client.rows.get(self.table, []))
        return SimpleNamespace(data=rows, count=len(rows))


class FakeSupabase:
    """Minimal stand-in for the Supabase query builder.

    Selects return every stored row of the table; filters are recorded only.
    """

    def __init__(self, rows: dict | None = None):
        self.rows = {table: list(values) for table, values in (rows or {}).items()}
        self.executed: list[FakeQuery] = []
        self.counter = 0

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def calls(self, table: str, operation: str) -> list[FakeQuery]:
        return [q for q in self.executed if q.table == table and q.operation == operation]


