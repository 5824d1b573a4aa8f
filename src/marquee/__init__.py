"""
Pixel selection engine for raster image editors.

The package tracks which pixels of a canvas are selected: vector-drawn
primitives, boolean combinations, morphology and the outline used to draw
the selection as marching ants.
"""

from .config import EngineConfig, load_engine_config
from .core.algebra import combine, contract, expand, feather, invert, select_all
from .core.coordinates import CoordinateMapper
from .core.geometry import Bounds
from .core.mask import SELECTED, UNSELECTED, MaskBuffer
from .core.path import PathDataError, flatten_path, parse_path_data
from .core.rasterizer import ShapeRasterizer
from .core.selection import CombinationMode, Selection
from .core.shapes import EllipseShape, PathShape, PathTransform, RectangleShape
from .core.tracer import BoundaryTracer, OutlinePath
from .manager import SelectionManager
from .settings import default_engine_config, get_settings, reset_settings_cache
from .serialization import (
    SelectionDecodeError,
    dump_selection,
    load_selection,
    selection_from_dict,
    selection_to_dict,
)
from .exporters import (
    export_mask_png,
    export_outline_json,
    export_selected_pixels_png,
    load_mask_png,
    outline_to_svg_path,
)

__all__ = [
    "EngineConfig",
    "load_engine_config",
    "combine",
    "contract",
    "expand",
    "feather",
    "invert",
    "select_all",
    "CoordinateMapper",
    "Bounds",
    "SELECTED",
    "UNSELECTED",
    "MaskBuffer",
    "PathDataError",
    "flatten_path",
    "parse_path_data",
    "ShapeRasterizer",
    "CombinationMode",
    "Selection",
    "EllipseShape",
    "PathShape",
    "PathTransform",
    "RectangleShape",
    "BoundaryTracer",
    "OutlinePath",
    "SelectionManager",
    "default_engine_config",
    "get_settings",
    "reset_settings_cache",
    "SelectionDecodeError",
    "dump_selection",
    "load_selection",
    "selection_from_dict",
    "selection_to_dict",
    "export_mask_png",
    "export_outline_json",
    "export_selected_pixels_png",
    "load_mask_png",
    "outline_to_svg_path",
]
