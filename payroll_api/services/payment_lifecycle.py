from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional
import logging

from payroll_api.common.errors import (
    ImmutableSlipField, InvalidStatusTransition, SlipNotFound, ValidationError,
)
from payroll_api.extensions import db
from payroll_api.models.payroll.slip import PayrollSlip, PAYMENT_STATUSES
from .payroll_common import PayrollSettings

log = logging.getLogger(__name__)

MUTABLE_FIELDS = ("payment_status", "payment_date", "payment_reference", "remarks")

ALLOWED_TRANSITIONS = {
    "pending": {"processed", "hold"},
    "processed": {"paid", "hold"},
    "hold": {"pending"},
    "paid": set(),
}


def _date(v) -> Optional[date]:
    if v in (None, ""):
        return None
    if isinstance(v, date):
        return v
    try:
        return date.fromisoformat(str(v)[:10])
    except ValueError:
        raise ValidationError("payment_date must be YYYY-MM-DD", payload={"payment_date": v})


def update_status(slip_id: int, changes: Dict[str, Any], settings: Optional[PayrollSettings] = None) -> PayrollSlip:
    """
    Apply payment lifecycle changes to a slip.

    Only payment_status / payment_date / payment_reference / remarks may be
    sent. Transitions are accepted as given unless strict transitions are
    switched on in config.
    """
    settings = settings or PayrollSettings.from_app()

    extra = sorted(k for k in (changes or {}) if k not in MUTABLE_FIELDS)
    if extra:
        raise ImmutableSlipField(payload={"fields": extra})

    slip = db.session.get(PayrollSlip, slip_id)
    if slip is None:
        raise SlipNotFound(payload={"id": slip_id})

    if "payment_status" in changes:
        new_status = (changes.get("payment_status") or "").strip().lower()
        if new_status not in PAYMENT_STATUSES:
            raise ValidationError(
                f"payment_status must be one of {', '.join(PAYMENT_STATUSES)}",
                payload={"payment_status": changes.get("payment_status")},
            )
        old_status = slip.payment_status
        if new_status != old_status:
            if settings.enforce_status_transitions and new_status not in ALLOWED_TRANSITIONS.get(old_status, set()):
                raise InvalidStatusTransition(
                    f"Cannot move slip from {old_status} to {new_status}",
                    payload={"from": old_status, "to": new_status},
                )
            log.info("Slip %s payment status %s -> %s", slip.id, old_status, new_status)
            slip.payment_status = new_status

    if "payment_date" in changes:
        slip.payment_date = _date(changes.get("payment_date"))
    if "payment_reference" in changes:
        slip.payment_reference = changes.get("payment_reference") or None
    if "remarks" in changes:
        slip.remarks = changes.get("remarks")

    db.session.commit()
    return slip
