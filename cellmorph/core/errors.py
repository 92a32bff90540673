"""
Exception types raised by the cellmorph pipeline.

Grid and matching errors are precondition violations and are fatal for a run.
Encoder errors are isolated to the export stage: the in-memory frame sequence
is left untouched, so export can be retried.
"""


class CellMorphError(Exception):
    """Base class for all cellmorph errors."""


class DegenerateGridError(CellMorphError, ValueError):
    """The normalized grid has zero cells along at least one axis."""


class MismatchedCellCountError(CellMorphError, ValueError):
    """Source and target grids do not have the same number of cells."""


class EmptyGridError(CellMorphError, ValueError):
    """The matcher was given zero cells."""


class SurfaceAcquisitionError(CellMorphError, RuntimeError):
    """A destination pixel surface could not be allocated or is unusable."""


class EncoderError(CellMorphError, RuntimeError):
    """The external encoder failed or is unavailable in this environment."""


class ExportCancelled(CellMorphError):
    """Export was cancelled by the caller before the encoder finished."""
