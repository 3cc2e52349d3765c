"""Service layer for the view-computation stages.

Services are stateless functions (or static-method classes) over immutable
models. The TableEngine strings them together in this order:

- filter_service: global text filter and sort
- hierarchy_service: parent-linked records to depth-annotated rows
- span_service: merge declarations to a cell coverage map
- selection_service: selected row bookkeeping
- form_service: add-row form model, validation and record construction
"""

from .filter_service import filter_and_sort, filter_records, sort_records
from .form_service import FormField, FormService, FormValidation
from .hierarchy_service import flatten_hierarchy, toggle_expand
from .selection_service import toggle_select
from .span_service import get_renderable_cells, resolve_spans

__all__ = [
    "FormField",
    "FormService",
    "FormValidation",
    "filter_and_sort",
    "filter_records",
    "flatten_hierarchy",
    "get_renderable_cells",
    "resolve_spans",
    "sort_records",
    "toggle_expand",
    "toggle_select",
]
