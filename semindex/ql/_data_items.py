from __future__ import annotations

import math
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import Field

from semindex.core.data_model import FrozenDataModel


class Namespace:
    """Well known namespace ids.

    Attributes:
        MAIN: Main namespace.
        CATEGORY: Category namespace.
        PROPERTY: Property namespace.
        CONCEPT: Concept namespace.
    """

    MAIN = 0
    CATEGORY = 14
    PROPERTY = 102
    CONCEPT = 108

    PREFIXES = {
        MAIN: "",
        CATEGORY: "Category:",
        PROPERTY: "Property:",
        CONCEPT: "Concept:",
    }

    @staticmethod
    def prefix(namespace: int) -> str:
        return Namespace.PREFIXES.get(namespace, f"{namespace}:")


class ValueType(str, Enum):
    """Declared value type of a property."""

    TEXT = "_txt"
    KEYWORD = "_keyw"
    PAGE = "_wpg"
    URI = "_uri"
    TIME = "_dat"
    NUMBER = "_num"
    BOOLEAN = "_boo"
    GEO = "_geo"


class Comparator(str, Enum):
    """Value comparator, rendered as its query prefix."""

    EQ = "="
    NEQ = "!"
    LESS = "<<"
    GREATER = ">>"
    LEQ = "<"
    GEQ = ">"
    LIKE = "~"
    NLIKE = "!~"
    PRIM_LIKE = "like:"
    PRIM_NLIKE = "nlike:"

    @property
    def prefix(self) -> str:
        return "" if self is Comparator.EQ else self.value

    def normalize(self) -> Comparator:
        if self is Comparator.PRIM_LIKE:
            return Comparator.LIKE
        if self is Comparator.PRIM_NLIKE:
            return Comparator.NLIKE
        return self

    def is_range(self) -> bool:
        return self in (
            Comparator.LESS,
            Comparator.GREATER,
            Comparator.LEQ,
            Comparator.GEQ,
        )


class EntityRef(FrozenDataModel):
    """Reference to a subject (page or subobject)."""

    kind: Literal["page"] = "page"

    title: str
    """Title in key form (underscores for spaces)."""

    namespace: int = Namespace.MAIN
    """Namespace id."""

    interwiki: str = ""
    """Interwiki prefix."""

    subobject: str = ""
    """Subobject name, empty for the page itself."""

    sortkey: str | None = None
    """Collation sort key, defaults to the title."""

    @property
    def hash(self) -> str:
        return "#".join(
            [
                self.title,
                str(self.namespace),
                self.interwiki,
                self.subobject,
            ]
        )

    @property
    def text(self) -> str:
        return self.title.replace("_", " ")

    def get_sortkey(self) -> str:
        return self.sortkey if self.sortkey else self.text

    def as_base(self) -> EntityRef:
        return EntityRef(
            title=self.title,
            namespace=self.namespace,
            interwiki=self.interwiki,
        )

    @staticmethod
    def from_hash(hash: str) -> EntityRef:
        parts = hash.split("#")
        if len(parts) < 2:
            raise ValueError(f"Malformed entity hash {hash!r}")
        parts += [""] * (4 - len(parts))
        return EntityRef(
            title=parts[0],
            namespace=int(parts[1]),
            interwiki=parts[2],
            subobject=parts[3],
        )

    def __str__(self) -> str:
        name = f"{Namespace.prefix(self.namespace)}{self.text}"
        if self.interwiki:
            name = f"{self.interwiki}:{name}"
        if self.subobject:
            name = f"{name}#{self.subobject}"
        return name


class Text(FrozenDataModel):
    kind: Literal["text"] = "text"
    value: str

    def __str__(self) -> str:
        return self.value


class Uri(FrozenDataModel):
    kind: Literal["uri"] = "uri"
    value: str

    def __str__(self) -> str:
        return self.value


class Number(FrozenDataModel):
    kind: Literal["number"] = "number"
    value: float

    def __str__(self) -> str:
        if float(self.value).is_integer():
            return str(int(self.value))
        return str(self.value)


class Boolean(FrozenDataModel):
    kind: Literal["boolean"] = "boolean"
    value: bool

    def __str__(self) -> str:
        return "true" if self.value else "false"


class Time(FrozenDataModel):
    """Point in time.

    Dates are compared as Julian day numbers so that ranges
    before the Unix epoch (and before year 1) keep working.
    Years use astronomical numbering, year 0 is 1 BC.
    """

    kind: Literal["time"] = "time"
    year: int
    month: int = 1
    day: int = 1
    hour: int = 0
    minute: int = 0
    second: float = 0.0
    calendar: Literal["gregorian", "julian"] = "gregorian"

    def to_julian_day(self) -> float:
        year, month = self.year, self.month
        if month <= 2:
            year -= 1
            month += 12
        if self.calendar == "gregorian":
            a = math.floor(year / 100)
            b = 2 - a + math.floor(a / 4)
        else:
            b = 0
        jd = (
            math.floor(365.25 * (year + 4716))
            + math.floor(30.6001 * (month + 1))
            + self.day
            + b
            - 1524.5
        )
        return jd + (self.hour + self.minute / 60 + self.second / 3600) / 24

    @staticmethod
    def from_julian_day(jd: float) -> Time:
        z = math.floor(jd + 0.5)
        f = jd + 0.5 - z
        if z >= 2299161:
            alpha = math.floor((z - 1867216.25) / 36524.25)
            a = z + 1 + alpha - math.floor(alpha / 4)
            calendar = "gregorian"
        else:
            a = z
            calendar = "julian"
        b = a + 1524
        c = math.floor((b - 122.1) / 365.25)
        d = math.floor(365.25 * c)
        e = math.floor((b - d) / 30.6001)
        day = b - d - math.floor(30.6001 * e)
        month = e - 1 if e < 14 else e - 13
        year = c - 4716 if month > 2 else c - 4715
        seconds = round(f * 86400, 3)
        hour = int(seconds // 3600)
        minute = int((seconds % 3600) // 60)
        return Time(
            year=year,
            month=month,
            day=day,
            hour=hour,
            minute=minute,
            second=seconds % 60,
            calendar=calendar,
        )

    def __str__(self) -> str:
        s = f"{self.year:04d}-{self.month:02d}-{self.day:02d}"
        if self.hour or self.minute or self.second:
            s = f"{s}T{self.hour:02d}:{self.minute:02d}:{int(self.second):02d}"
        return s


class GeoCoord(FrozenDataModel):
    kind: Literal["geo"] = "geo"
    lat: float
    lon: float

    def serialize(self) -> str:
        return f"{self.lat},{self.lon}"

    def __str__(self) -> str:
        return self.serialize()


class GeoArea(FrozenDataModel):
    """Bounding box used for area comparisons."""

    kind: Literal["geo_area"] = "geo_area"
    north: float
    west: float
    south: float
    east: float

    @staticmethod
    def around(center: GeoCoord, radius_km: float) -> GeoArea:
        lat_delta = radius_km / 111.32
        cos_lat = max(math.cos(math.radians(center.lat)), 1e-9)
        lon_delta = radius_km / (111.32 * cos_lat)
        return GeoArea(
            north=min(center.lat + lat_delta, 90.0),
            south=max(center.lat - lat_delta, -90.0),
            west=max(center.lon - lon_delta, -180.0),
            east=min(center.lon + lon_delta, 180.0),
        )

    def __str__(self) -> str:
        return f"{self.north},{self.west};{self.south},{self.east}"


DataItem = Annotated[
    Union[EntityRef, Text, Uri, Number, Boolean, Time, GeoCoord, GeoArea],
    Field(discriminator="kind"),
]
