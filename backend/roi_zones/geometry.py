import logging
from typing import Iterable, List, Optional, Sequence, Tuple, Union

logger = logging.getLogger(__name__)

# Opposite edges of a rectangle are parallel, two axes cover all four edges
RECT_AXES_COUNT = 2


class Vector:
    """Integer vector in two-dimensional space"""
    def __init__(self, x: int, y: int):
        self.x = x
        self.y = y

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Vector):
            return NotImplemented
        return self.x == other.x and self.y == other.y

    def __repr__(self) -> str:
        return f"Vector({self.x}, {self.y})"

    def dot(self, other: 'Vector') -> int:
        """Dot product, may be negative"""
        return self.x * other.x + self.y * other.y

    def normal(self) -> 'Vector':
        """Right perpendicular (y, -x), not unit length"""
        return Vector(self.y, -self.x)


class Point:
    """Integer point in two-dimensional space"""
    def __init__(self, x: int, y: int):
        self.x = x
        self.y = y

    def __sub__(self, other: 'Point') -> Vector:
        """Vector from `other` to this point"""
        return Vector(self.x - other.x, self.y - other.y)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Point):
            return NotImplemented
        return self.x == other.x and self.y == other.y

    def __repr__(self) -> str:
        return f"Point({self.x}, {self.y})"

    def to_vector(self) -> Vector:
        """Vector from the origin to this point"""
        return Vector(self.x, self.y)


class Rect:
    """Axis-aligned rectangle, corners (left, top) - (left + width, top + height)"""
    def __init__(self, left: int, top: int, width: int, height: int):
        self.left = left
        self.top = top
        self.width = width
        self.height = height

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Rect):
            return NotImplemented
        return (self.left, self.top, self.width, self.height) == \
            (other.left, other.top, other.width, other.height)

    def __repr__(self) -> str:
        return f"Rect(left={self.left}, top={self.top}, width={self.width}, height={self.height})"

    @property
    def right(self) -> int:
        return self.left + self.width

    @property
    def bottom(self) -> int:
        return self.top + self.height

    @classmethod
    def from_corners(cls, x1: int, y1: int, x2: int, y2: int) -> 'Rect':
        """Builds a rectangle from two opposite corners in any order"""
        left, right = min(x1, x2), max(x1, x2)
        top, bottom = min(y1, y2), max(y1, y2)
        return cls(left, top, right - left, bottom - top)

    def normalized(self) -> 'Rect':
        """Same box with non-negative width and height"""
        if self.width >= 0 and self.height >= 0:
            return self
        return Rect.from_corners(self.left, self.top, self.right, self.bottom)


def rect_to_points(rect: Rect) -> List[Point]:
    """Rectangle corners clockwise: top-left, top-right, bottom-right, bottom-left"""
    return [
        Point(rect.left, rect.top),
        Point(rect.left + rect.width, rect.top),
        Point(rect.left + rect.width, rect.top + rect.height),
        Point(rect.left, rect.top + rect.height),
    ]


class Polygon:
    """
    Convex polygon, implicitly closed.

    Vertices must go in a consistent order (all clockwise or all
    counter-clockwise) and the polygon must be convex and simple. This is
    not checked: for concave or self-intersecting polygons the separating
    axis test gives wrong answers.
    """
    def __init__(self, points: Iterable[Point]):
        self.points = list(points)

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self):
        return iter(self.points)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Polygon):
            return NotImplemented
        return self.points == other.points

    def __repr__(self) -> str:
        return f"Polygon({self.points})"

    @classmethod
    def from_rect(cls, rect: Rect) -> 'Polygon':
        return cls(rect_to_points(rect))

    def get_edges(self, count: Optional[int] = None) -> List[Vector]:
        """
        Edge vectors, edge i goes from vertex i to vertex (i + 1) mod n.

        Args:
            count: Number of leading edges to return, all edges by default
        """
        n = len(self.points)
        if count is None:
            count = n
        return [self.points[(i + 1) % n] - self.points[i] for i in range(min(count, n))]

    def get_axes(self, count: Optional[int] = None) -> List[Vector]:
        """
        Edge normals, used as projection axes.

        Normals are left unnormalized: projections along one axis are only
        compared with each other, so the magnitude does not matter.
        """
        return [edge.normal() for edge in self.get_edges(count)]

    def project_onto_axis(self, axis: Vector) -> Tuple[int, int]:
        """
        Projects every vertex onto the axis.

        Returns:
            Tuple (min_proj, max_proj)
        """
        projections = [point.to_vector().dot(axis) for point in self.points]
        return min(projections), max(projections)

    def bounding_box(self) -> Tuple[int, int, int, int]:
        """Axis-aligned bounding box (x1, y1, x2, y2)"""
        xs = [point.x for point in self.points]
        ys = [point.y for point in self.points]
        return min(xs), min(ys), max(xs), max(ys)


def bounding_boxes_disjoint(roi: Polygon, rect: Rect) -> bool:
    """True when the rectangle lies entirely outside the ROI bounding box"""
    x1, y1, x2, y2 = roi.bounding_box()
    return (rect.left > x2 or rect.left + rect.width < x1 or
            rect.top > y2 or rect.top + rect.height < y1)


def separating_axes(roi: Polygon, rect_polygon: Polygon):
    """Candidate axes: one per ROI edge, then two for the rectangle"""
    yield from roi.get_axes()
    yield from rect_polygon.get_axes(RECT_AXES_COUNT)


def collision_detect(roi: Union[Polygon, Sequence[Point]], rect: Rect) -> bool:
    """
    Checks whether a rectangle intersects the ROI (Separating Axis Theorem).

    Shapes that only touch at an edge or a vertex are reported as
    intersecting.

    Args:
        roi: Convex polygon with at least 3 points
        rect: Detection box

    Returns:
        True if the shapes intersect or touch, otherwise False
    """
    if not isinstance(roi, Polygon):
        roi = Polygon(roi)
    if len(roi) < 3:
        logger.warning("roi points must be >= 3, got %d", len(roi))
        return False

    rect = rect.normalized()
    # AABB check first, if the boxes are apart the shapes are apart
    if bounding_boxes_disjoint(roi, rect):
        return False

    rect_polygon = Polygon.from_rect(rect)
    for axis in separating_axes(roi, rect_polygon):
        roi_min, roi_max = roi.project_onto_axis(axis)
        rect_min, rect_max = rect_polygon.project_onto_axis(axis)
        if rect_max < roi_min or rect_min > roi_max:
            return False

    return True
