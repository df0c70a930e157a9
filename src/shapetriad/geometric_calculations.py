from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence

from .exceptions import RingSamplingError
from .types import BBox, Point2D, PointT

Ring = Sequence[PointT]


def signed_area(coords: Ring, fast: bool = False) -> float:
    """Return the signed area enclosed by a ring (shoelace formula).
    A value >= 0 indicates a counter-clockwise oriented ring.
    Setting 'fast' to True skips the final halving, for when only
    the sign or a relative size is needed.
    Z and M values are ignored, and an unclosed ring is treated as closed.
    """
    area2 = 0.0
    if not coords:
        return area2
    for (x0, y0, *_), (x1, y1, *_) in zip(coords, [*coords[1:], coords[0]]):
        area2 += x0 * y1 - x1 * y0
    if fast:
        return area2
    return area2 / 2.0


def is_cw(coords: Ring) -> bool:
    """Returns True if a polygon ring has clockwise orientation, determined
    by a negatively signed area.
    """
    return signed_area(coords, fast=True) < 0


def rewind(coords: Ring) -> list[PointT]:
    """Returns the input coords in reversed order."""
    return list(reversed(coords))


def ring_bbox(coords: Ring) -> BBox:
    """Calculates and returns the bounding box of a ring."""
    xs = [p[0] for p in coords]
    ys = [p[1] for p in coords]
    return min(xs), min(ys), max(xs), max(ys)


def bbox_contains(bbox1: BBox, bbox2: BBox) -> bool:
    """Tests whether bbox1 fully contains bbox2."""
    xmin1, ymin1, xmax1, ymax1 = bbox1
    xmin2, ymin2, xmax2, ymax2 = bbox2
    return xmin1 < xmin2 and xmax2 < xmax1 and ymin1 < ymin2 and ymax2 < ymax1


def ring_contains_point(coords: Ring, p: Point2D) -> bool:
    """Point-in-polygon test by counting crossings of a ray cast
    from p along +X (Haines, Graphics Gems IV).
    """
    tx, ty = p
    inside = False
    x0, y0 = coords[0][0], coords[0][1]
    above0 = y0 >= ty
    for vtx in coords[1:]:
        x1, y1 = vtx[0], vtx[1]
        above1 = y1 >= ty
        # only edges straddling the ray can cross it
        if above0 != above1:
            right0 = x0 >= tx
            if right0 == (x1 >= tx):
                if right0:
                    inside = not inside
            elif x1 - (y1 - ty) * (x0 - x1) / (y0 - y1) >= tx:
                inside = not inside
        x0, y0, above0 = x1, y1, above1
    return inside


def ring_sample(coords: Ring, ccw: bool = False) -> Point2D:
    """Return a point guaranteed to lie inside a ring: the centroid of the
    first vertex triplet that turns the same way as the ring and whose
    centroid passes the point-in-ring test.
    The ring is assumed clockwise unless ccw is True.
    """

    def closed_walk() -> Iterator[PointT]:
        yield from coords
        # wrap around so the last triplet is checked too
        yield coords[1]

    triplet: list[Point2D] = []
    for p in closed_walk():
        xy = (p[0], p[1])
        if xy not in triplet:
            triplet.append(xy)
        if len(triplet) < 3:
            continue

        (ax, ay), (bx, by), (cx, cy) = triplet
        collinear = (ay - by) * (ax - cx) == (ay - cy) * (ax - bx)
        if not collinear and ccw == (not is_cw(triplet + [triplet[0]])):
            centroid = ((ax + bx + cx) / 3.0, (ay + by + cy) / 3.0)
            if ring_contains_point(coords, centroid):
                return centroid
        triplet.pop(0)

    raise RingSamplingError(
        f"Unable to find a sample point inside the ring: {list(coords)}. "
        "The ring must enclose a non-zero area."
    )


def organize_polygon_rings(
    rings: Iterable[Ring], return_errors: dict[str, int] | None = None
) -> list[list[Ring]]:
    """Organize a list of closed rings into one or more polygons with holes.
    Returns a list of polygons, each a list whose first ring is the exterior
    and whose remaining rings are its holes.

    Clockwise rings are exteriors and counter-clockwise rings are holes.
    The shapefile format does not record which exterior a hole belongs to,
    so holes are matched by bbox containment, then by a sample point inside
    the hole, and finally to the smallest candidate exterior.
    Holes contained by no exterior are returned as exteriors of their own and
    counted under "polygon_orphaned_holes" in return_errors; rings that are
    all holes are returned as exteriors and counted under "polygon_only_holes".
    """
    exteriors: list[Ring] = []
    holes: list[Ring] = []
    for ring in rings:
        (exteriors if is_cw(ring) else holes).append(ring)

    if not exteriors:
        # most likely wound the wrong way round
        if return_errors is not None:
            return_errors["polygon_only_holes"] = len(holes)
        return [[hole] for hole in holes]

    if len(exteriors) == 1:
        return [[exteriors[0], *holes]]

    if not holes:
        return [[ext] for ext in exteriors]

    exterior_bboxes = [ring_bbox(ext) for ext in exteriors]
    candidates: dict[int, list[int]] = {}
    for hole_i, hole in enumerate(holes):
        hole_bbox = ring_bbox(hole)
        candidates[hole_i] = [
            ext_i
            for ext_i, ext_bbox in enumerate(exterior_bboxes)
            if bbox_contains(ext_bbox, hole_bbox)
        ]

    for hole_i, ext_indexes in candidates.items():
        if len(ext_indexes) > 1:
            sample = ring_sample(holes[hole_i], ccw=not is_cw(holes[hole_i]))
            candidates[hole_i] = [
                ext_i
                for ext_i in ext_indexes
                if ring_contains_point(exteriors[ext_i], sample)
            ]

    # a hole inside an exterior nested in another exterior's hole belongs
    # to the innermost, i.e. smallest, exterior
    for hole_i, ext_indexes in candidates.items():
        if len(ext_indexes) > 1:
            candidates[hole_i] = [
                min(
                    ext_indexes,
                    key=lambda ext_i: abs(signed_area(exteriors[ext_i], fast=True)),
                )
            ]

    polys: list[list[Ring]] = [[ext] for ext in exteriors]
    orphans: list[Ring] = []
    for hole_i, ext_indexes in candidates.items():
        if ext_indexes:
            polys[ext_indexes[0]].append(holes[hole_i])
        else:
            orphans.append(holes[hole_i])

    polys.extend([orphan] for orphan in orphans)
    if orphans and return_errors is not None:
        return_errors["polygon_orphaned_holes"] = len(orphans)

    return polys
