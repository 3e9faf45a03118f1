"""Tools the model can call, and the registry that dispatches them."""

from .registry import Tool, ToolResult, ToolRegistry, infer_parameters
from .clinical_tools import (
    PatientRecordStore,
    DrugInteractionChecker,
    SEVERITY_ORDER,
    build_clinical_registry
)

__all__ = [
    'Tool',
    'ToolResult',
    'ToolRegistry',
    'infer_parameters',
    'PatientRecordStore',
    'DrugInteractionChecker',
    'SEVERITY_ORDER',
    'build_clinical_registry'
]
