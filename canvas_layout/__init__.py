from .config import DEFAULT_CONFIG, LayoutConfig
from .elements import (
    Element,
    ElementKind,
    LayoutError,
    MalformedPoints,
    UnknownElementKind,
    create_element,
    element_from_dict,
)
from .engine import CanvasSession, DrawingRequest, PlacementEngine, ToolResult, UnknownAction
from .report import CanvasReport, build_report

__all__ = [
    "DEFAULT_CONFIG",
    "LayoutConfig",
    "Element",
    "ElementKind",
    "LayoutError",
    "MalformedPoints",
    "UnknownElementKind",
    "create_element",
    "element_from_dict",
    "CanvasSession",
    "DrawingRequest",
    "PlacementEngine",
    "ToolResult",
    "UnknownAction",
    "CanvasReport",
    "build_report",
]
