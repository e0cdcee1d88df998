class VolSurfaceError(Exception):
    """Base class for errors raised by the volsurface package."""


class InputError(VolSurfaceError, ValueError):
    """Raised when a query or construction argument is malformed.

    This covers contradictory or missing query arguments (for example more than
    one of ``delta``/``strike``/``moneyness``), a missing spot for moneyness
    conversion, inverted date ranges, a non-positive delta after conversion and
    a term structure with too few points to interpolate.

    Notes
    -----
    Validation failures of a surface are *not* raised. They are recorded on the
    surface and reported through :meth:`volsurface.VolSurface.is_valid`.
    """
