"""Tool dispatch core: discover, select and invoke tools.

- ``ToolCatalog``: fetches the tool list from the server
- ``ToolInvoker``: calls a tool and extracts its text result
- ``HeuristicSelector`` / ``OracleSelector``: choose a tool for input text
- ``OptimizeFlow``: runs the three steps as one state machine
"""

from mcp_explorer.dispatch.catalog import ToolCatalog
from mcp_explorer.dispatch.flow import FlowOutcome, FlowPhase, OptimizeFlow
from mcp_explorer.dispatch.invoker import ToolInvoker
from mcp_explorer.dispatch.models import (
    Capability,
    Catalog,
    ContentBlock,
    Decision,
    InvocationRequest,
    InvocationResult,
    OtherBlock,
    TextBlock,
)
from mcp_explorer.dispatch.selectors import (
    DecisionOracle,
    HeuristicSelector,
    OracleSelector,
    Selector,
    parse_decision,
    serialize_catalog,
)
from mcp_explorer.dispatch.transport import Transport

__all__ = [
    "Capability",
    "Catalog",
    "ContentBlock",
    "Decision",
    "DecisionOracle",
    "FlowOutcome",
    "FlowPhase",
    "HeuristicSelector",
    "InvocationRequest",
    "InvocationResult",
    "OptimizeFlow",
    "OracleSelector",
    "OtherBlock",
    "Selector",
    "TextBlock",
    "ToolCatalog",
    "ToolInvoker",
    "Transport",
    "parse_decision",
    "serialize_catalog",
]
