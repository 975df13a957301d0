"""Model hierarchies shared by the polyson tests."""

from __future__ import annotations

from datetime import datetime
from enum import Enum, IntEnum
from typing import Optional

from pydantic import BaseModel, Field

from polyson import TAG_STRATEGY, discriminator, polymorphic


# =============================================================================
# Integer enum discriminator
# =============================================================================


class AbstractType(IntEnum):
    CHILD_A = 0
    CHILD_B = 1
    UNMAPPED = 7


@polymorphic("abstract_type")
class AbstractItem(BaseModel):
    abstract_type: AbstractType
    a: int = 0
    b: list[int] = Field(default_factory=list)


@discriminator(AbstractType.CHILD_A)
class ChildA(AbstractItem):
    abstract_type: AbstractType = AbstractType.CHILD_A
    today: Optional[datetime] = None


@discriminator(AbstractType.CHILD_B)
class ChildB(AbstractItem):
    abstract_type: AbstractType = AbstractType.CHILD_B
    c: Optional[AbstractItem] = None


# =============================================================================
# String enum discriminator
# =============================================================================


class ShapeKind(str, Enum):
    CIRCLE = "circle"
    SQUARE = "square"


@polymorphic("kind")
class Shape(BaseModel):
    kind: ShapeKind


@discriminator(ShapeKind.CIRCLE)
class Circle(Shape):
    kind: ShapeKind = ShapeKind.CIRCLE
    radius: float


@discriminator(ShapeKind.SQUARE)
class Square(Shape):
    kind: ShapeKind = ShapeKind.SQUARE
    side: float


class Drawing(BaseModel):
    name: str
    shapes: list[Shape] = Field(default_factory=list)
    by_name: dict[str, Shape] = Field(default_factory=dict)
    highlight: Optional[Shape] = None


# =============================================================================
# Tag discriminator with an aliased property
# =============================================================================


@polymorphic("event_type", strategy=TAG_STRATEGY)
class Event(BaseModel):
    event_type: str = Field(alias="type")


@discriminator("click")
class Click(Event):
    event_type: str = Field(default="click", alias="type")
    x: int
    y: int


@discriminator("key")
class KeyPress(Event):
    event_type: str = Field(default="key", alias="type")
    key: str


# =============================================================================
# Plain models
# =============================================================================


class Point(BaseModel):
    x: int
    y: int


class Polyline(BaseModel):
    label: Optional[str] = None
    points: list[Point] = Field(default_factory=list)
    corners: tuple[Point, Point] | None = None
    tags: set[str] = Field(default_factory=set)
    metadata: dict[str, int] = Field(default_factory=dict)
