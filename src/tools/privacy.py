"""Location masking for profiles shown to anyone but their owner."""

from __future__ import annotations

APPROX_DECIMALS = 2  # ~1 km


def _approximate(value: float | None) -> float | None:
    if value is None:
        return None
    return round(float(value), APPROX_DECIMALS)


def mask_location(profile: dict, is_owner: bool) -> dict:
    """Return a copy of ``profile`` with coordinates fit for the viewer.

    Owners see their exact coordinates. Everyone else gets
    ``approx_latitude``/``approx_longitude`` rounded to two decimals and no
    exact fields at all. A missing coordinate stays ``None``.
    """

    masked = dict(profile)
    if is_owner:
        return masked

    latitude = masked.pop("latitude", None)
    longitude = masked.pop("longitude", None)
    masked["approx_latitude"] = _approximate(latitude)
    masked["approx_longitude"] = _approximate(longitude)
    return masked
