from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from utils.errors import MalformedMutationCommand

UPDATE_PREFIX = "UPDATE_DATA|"
ADD_PREFIX = "ADD_DATA|"


@dataclass(frozen=True)
class MutationCommand:
    action: str  # "update" | "add"
    field: str
    value: str

    def confirmation(self) -> str:
        if self.action == "add":
            return f"Perfect! I've added {self.field}: {self.value} to your profile."
        return f"Got it! I've updated your {self.field} to {self.value}. Your updated information is now saved."


def parse_mutation(text: str) -> Optional[MutationCommand]:
    """
    Parse a model reply of the form ``UPDATE_DATA|field|value`` or
    ``ADD_DATA|field|value``.

    Returns None when the reply is ordinary text. The split stops after the
    field, so any later "|" is kept as part of the value. Raises
    MalformedMutationCommand when the prefix is present but no field/value
    pair follows.
    """
    if text.startswith(UPDATE_PREFIX):
        action = "update"
    elif text.startswith(ADD_PREFIX):
        action = "add"
    else:
        return None

    parts = text.split("|", 2)
    if len(parts) != 3:
        raise MalformedMutationCommand("Mutation command is missing a value", raw=text)

    field = parts[1].strip()
    value = parts[2].strip()
    if not field:
        raise MalformedMutationCommand("Mutation command is missing a field name", raw=text)
    return MutationCommand(action=action, field=field, value=value)
