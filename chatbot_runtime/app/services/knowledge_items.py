"""
KnowledgeItem: closed union CONTACT | SCHEDULE | DYNAMIC.
Built fresh per request from tenant-scoped rows; consumers branch on `kind` and end with assert_never.
"""
from dataclasses import dataclass, field
from datetime import datetime, time
from typing import Any, Dict, Literal, Optional, Tuple, Union

KIND_CONTACT = "CONTACT"
KIND_SCHEDULE = "SCHEDULE"
KIND_DYNAMIC = "DYNAMIC"

UNKNOWN_TYPE_NAME = "UNKNOWN_TYPE"


@dataclass(frozen=True)
class ContactDetails:
    """Payload of one bb_contacts row. Field order is the serialization order."""

    org_name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    address_text: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    hours_text: Optional[str] = None


@dataclass(frozen=True)
class ScheduleRow:
    day_of_week: str
    open_time: time
    close_time: time
    notes: Optional[str] = None


@dataclass(frozen=True)
class ContactItem:
    entity_id: int
    created_at: datetime
    contact: ContactDetails
    kind: Literal["CONTACT"] = KIND_CONTACT


@dataclass(frozen=True)
class ScheduleItem:
    entity_id: int
    created_at: datetime
    rows: Tuple[ScheduleRow, ...] = ()
    kind: Literal["SCHEDULE"] = KIND_SCHEDULE


@dataclass(frozen=True)
class DynamicItem:
    entity_id: int
    created_at: datetime
    type_id: int
    type_name: str
    data: Dict[str, Any] = field(default_factory=dict)
    kind: Literal["DYNAMIC"] = KIND_DYNAMIC


KnowledgeItem = Union[ContactItem, ScheduleItem, DynamicItem]
