from __future__ import annotations

import json
from threading import RLock
from typing import Any, Dict, List, Optional, Sequence

from services.catalog import ASSET_KEYS, LIABILITY_KEYS, FieldDefinition


# ============================================================
# Prompts
# ============================================================

COMPLETE_INSTRUCTION_TEMPLATE = """
You are a helpful financial assistant. The user has provided the following data:
{data_json}

Net worth is total assets minus total liabilities.
- Assets: {asset_keys}
- Liabilities: {liability_keys}
Any field that is missing from the data counts as zero.

You can:
1. Answer questions about their finances (net worth, totals, comparisons)
2. If they want to UPDATE existing data, respond with: UPDATE_DATA|field|newValue
   Example: "UPDATE_DATA|cash|5000"
3. If they want to ADD new data fields, respond with: ADD_DATA|fieldName|value
   Example: "ADD_DATA|stocks|25000"

When users say things like:
- "Actually my cash is $5000" → UPDATE_DATA|cash|5000
- "I also have $25k in stocks" → ADD_DATA|stocks|25000
- "Change my age to 36" → UPDATE_DATA|age|36

Otherwise, answer their questions naturally using the data provided.
""".strip()

COLLECTING_INSTRUCTION_TEMPLATE = (
    "You are collecting financial information. You just asked for the user's {field}.\n"
    "Extract their {field} from their response, acknowledge it briefly, and I'll tell you what to ask next."
)


class QuestionnaireSession:
    """
    One structured-mode conversation: a cursor over the field catalog,
    the raw answers collected so far and the chat history.

    Answers are stored exactly as given. Once the cursor reaches the end of
    the catalog the session is complete and further answers are ignored.
    """

    def __init__(self, catalog: Sequence[FieldDefinition]) -> None:
        if not catalog:
            raise ValueError("catalog must not be empty")
        self.catalog: Sequence[FieldDefinition] = catalog
        self.cursor = 0
        self.collected_data: Dict[str, str] = {}
        self.history: List[Dict[str, Any]] = []
        self.lock = RLock()

    def current_field(self) -> Optional[FieldDefinition]:
        if self.cursor < len(self.catalog):
            return self.catalog[self.cursor]
        return None

    def current_question(self) -> Optional[str]:
        field = self.current_field()
        return field.prompt if field else None

    def is_complete(self) -> bool:
        return self.cursor >= len(self.catalog)

    def record_answer(self, raw_value: str) -> None:
        field = self.current_field()
        if field is None:
            return
        self.collected_data[field.key] = raw_value
        self.cursor += 1

    def update_field(self, field: str, value: str) -> None:
        self.collected_data[field] = value

    def append_turn(self, role: str, content: str) -> None:
        self.history.append({"role": role, "content": content})

    def reset(self) -> None:
        self.cursor = 0
        self.collected_data = {}
        self.history = []

    def build_instruction(self) -> str:
        if self.is_complete():
            return COMPLETE_INSTRUCTION_TEMPLATE.format(
                data_json=json.dumps(self.collected_data, ensure_ascii=False, indent=2),
                asset_keys=", ".join(ASSET_KEYS),
                liability_keys=", ".join(LIABILITY_KEYS),
            )
        # Called before this turn's record_answer, so cursor still points at
        # the field the user is answering.
        return COLLECTING_INSTRUCTION_TEMPLATE.format(field=self.catalog[self.cursor].key)

    def snapshot(self) -> Dict[str, Any]:
        return {
            "cursor": self.cursor,
            "total_fields": len(self.catalog),
            "is_complete": self.is_complete(),
            "current_question": self.current_question(),
            "collected_data": dict(self.collected_data),
            "history_length": len(self.history),
        }
