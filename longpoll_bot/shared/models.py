"""
MODULE OVERVIEW:
The wire structures exchanged with the API and the long poll server, powered
by Pydantic v2.

WHAT IS HAPPENING HERE:
The same models are used by the client to decode responses and by the
development server to encode them, so both sides agree on one contract.
The server sends `ts` as a string in normal batches but as a bare number in
some failure answers; `coerce_numbers_to_str` folds both into a string cursor.
"""
from typing import Any
from pydantic import BaseModel, ConfigDict, Field

# WHAT IS HAPPENING HERE:
# The triple returned by groups.getLongPollServer. `server` is the full URL
# the long poll GET is sent to, `key` authorises it and `ts` is the cursor.
class LongPollServer(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    key: str
    server: str
    ts: str

# WHAT IS HAPPENING HERE:
# One update from the `updates` array. Only `type` is needed for routing; the
# rest of the payload stays untouched in `object`, and unknown top level keys
# are kept so handlers can reach them.
class GroupEvent(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    type: str
    object: dict[str, Any] = Field(default_factory=dict)
    group_id: int | None = None
    event_id: str | None = None
    v: str | None = None

# WHAT IS HAPPENING HERE:
# A missing `failed` and `failed: 0` both mean a normal batch. Failure answers
# (failed 2/3) may carry no `ts` and no `updates` at all.
class PollResponse(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    ts: str | None = None
    updates: list[GroupEvent] = Field(default_factory=list)
    failed: int | None = None

class Group(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    name: str | None = None
    screen_name: str | None = None
