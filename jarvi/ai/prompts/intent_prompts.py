"""
Intent Prompts - classification and temporal token suggestion.

Both prompts ask for strict JSON so the response can be validated and,
when it is not usable, discarded in favor of the rule-based backends.

Usage:
======
    from jarvi.ai.prompts.intent_prompts import (
        INTENT_SYSTEM_PROMPT,
        build_intent_prompt,
    )

    response = await provider.generate_json(
        build_intent_prompt(text), system_prompt=INTENT_SYSTEM_PROMPT
    )
"""

from jarvi.ai.intent.schemas import IntentType


# ---------------------------------------------------------------------------
# INTENT CLASSIFICATION
# ---------------------------------------------------------------------------

INTENT_SYSTEM_PROMPT = f"""
You classify chat messages sent to a personal scheduling assistant.

Allowed intents:
{chr(10).join(f"- {intent.value}" for intent in IntentType)}

Rules:
======
1. create_event: the user wants one or more calendar entries created,
   including messages that list several time blocks and breaks.
2. update_event / delete_event: the user changes or removes an existing event.
3. create_task / view_tasks / mark_task_complete: to-do list operations.
4. view_calendar: the user asks what is on the calendar.
5. general_query: anything else, including questions about capabilities.
6. When unsure, lower the confidence instead of guessing a mutating intent.

Respond with JSON:
{{"intent": "<one of the allowed intents>", "confidence": <0.0-1.0>, "reasoning": "<short>"}}
"""


def build_intent_prompt(text: str) -> str:
    return f'Message: "{text}"\n\nClassify this message.'


# ---------------------------------------------------------------------------
# TEMPORAL TOKEN SUGGESTION
# ---------------------------------------------------------------------------

TOKEN_SYSTEM_PROMPT = """
You extract time expressions from ONE clause of a scheduling message.

Token kinds:
============
- "range":    an explicit start and end, e.g. "3:30 - 6:00"
- "time":     a single time of day, e.g. "at 7", "9:15pm"
- "duration": a length of time, e.g. "5 minutes", "half an hour"

Rules:
======
1. Copy times exactly as written. Do NOT convert to 24-hour time and do NOT
   guess am/pm; set "meridiem" only when the clause says am or pm.
2. Durations are whole minutes.
3. Return an empty list when the clause has no time expression.

Respond with JSON:
{"tokens": [
  {"kind": "range", "start": {"hour": 3, "minute": 30, "meridiem": null},
                    "end": {"hour": 6, "minute": 0, "meridiem": null}},
  {"kind": "time", "hour": 7, "minute": 0, "meridiem": "pm"},
  {"kind": "duration", "minutes": 5}
]}
"""


def build_token_prompt(clause_text: str) -> str:
    return f'Clause: "{clause_text}"\n\nExtract the time expressions.'
