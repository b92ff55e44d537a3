"""Tool-selection prompt sent to the decision oracle."""

from typing import Dict, List

SYSTEM_PROMPT = (
    "You are a tool router. You receive a user task and a JSON array of "
    "available tools, each with a name and a description. Choose the single "
    "tool that best fits the task. Answer with a JSON object and nothing "
    'else, in the form {"tool_name": "<name of the chosen tool>"}. The name '
    "must be copied exactly from the list."
)

USER_TEMPLATE = "Task:\n{task}\n\nAvailable tools:\n{tools}"


def build_selection_messages(serialized_catalog: str, task: str) -> List[Dict[str, str]]:
    """Chat messages asking the model to pick one tool for *task*."""
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": USER_TEMPLATE.format(task=task, tools=serialized_catalog)},
    ]
