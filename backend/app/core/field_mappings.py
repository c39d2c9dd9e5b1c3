"""Field Mappings — which board column maps to which ledger field, and with what value.

Invariants:
    - Every mapping is an explicit dict — adding a synced column requires editing this file
    - Date writes go to logistics dates only (out/to); charging dates are never touched
    - Status labels without a mapping are ignored, never guessed
    - Board labels match without regard to case ("No dice" == "No Dice")

Design Decisions:
    - Column ids are the board's internal ids (stable), not display titles
    - Ledger dates carry a fixed 09:00:00 time-of-day
"""

from app.core.domain_types import PaymentType


# ─── Board columns ───────────────────────────────────────────────

JOB_ID_COLUMN = "text7"
START_DATE_COLUMN = "date"
END_DATE_COLUMN = "dup__of_hire_starts"
QUOTE_STATUS_COLUMN = "status3"
JOB_STATUS_COLUMN = "dup__of_job_status"
INSURANCE_EXCESS_COLUMN = "status58"
COMPLETION_COLUMN = "dup__of_invoice_emailed_"


# ─── Ledger fields ───────────────────────────────────────────────

LEDGER_OUTGOING_FIELD = "out"
LEDGER_RETURNING_FIELD = "to"
LEDGER_STATUS_FIELD = "status"
LEDGER_DATE_TIME_OF_DAY = "09:00:00"

# column → (ledger field, outcome key)
DATE_COLUMNS: dict[str, tuple[str, str]] = {
    START_DATE_COLUMN: (LEDGER_OUTGOING_FIELD, "outgoingDate"),
    END_DATE_COLUMN: (LEDGER_RETURNING_FIELD, "returningDate"),
}


# ─── Ledger statuses ─────────────────────────────────────────────

LEDGER_STATUS_NAMES: dict[int, str] = {
    0: "Enquiry",
    1: "Provisional",
    2: "Booked",
    3: "Prepped",
    4: "Part Dispatched",
    5: "Dispatched",
    6: "Returned Incomplete",
    7: "Returned",
    8: "Requires Attention",
    9: "Cancelled",
    10: "Not Interested",
    11: "Completed",
}

QUOTE_STATUS_TO_LEDGER: dict[str, int] = {
    "Quoted": 0,
    "No dice": 10,
    "Held pending deposit": 1,
    "Confirmed": 2,
    "Deposit paid": 2,
    "Paid in full": 2,
}

COMPLETION_LABEL = "All done & hire finished"
LEDGER_COMPLETED_STATUS = 11

# Ledger status → board quote status (Booked is always "Confirmed", never a paid label)
LEDGER_STATUS_TO_BOARD: dict[int, str] = {
    10: "No Dice",
    1: "Held pending deposit",
    2: "Confirmed",
}


# ─── Payment → board status ──────────────────────────────────────

DEPOSIT_PAID_LABEL = "Deposit paid"
PAID_IN_FULL_LABEL = "Paid in full"
EXCESS_PAID_LABEL = "Excess paid"
PRE_AUTH_TAKEN_LABEL = "Pre-auth taken"


def ledger_date_value(date: str) -> str:
    """Board date 'YYYY-MM-DD' → ledger datetime string."""
    return f"{date} {LEDGER_DATE_TIME_OF_DAY}"


def lookup_label(mapping: dict[str, int], label: str) -> int | None:
    """Case-insensitive label lookup; None when the label is not mapped."""
    wanted = label.strip().casefold()
    for known, status in mapping.items():
        if known.casefold() == wanted:
            return status
    return None


def payment_status_update(
    payment_type: PaymentType, is_pre_auth: bool,
) -> tuple[str, str]:
    """The single (board column, label) a payment authorizes changing."""
    if payment_type is PaymentType.DEPOSIT:
        return QUOTE_STATUS_COLUMN, DEPOSIT_PAID_LABEL
    if payment_type is PaymentType.BALANCE:
        return JOB_STATUS_COLUMN, PAID_IN_FULL_LABEL
    label = PRE_AUTH_TAKEN_LABEL if is_pre_auth else EXCESS_PAID_LABEL
    return INSURANCE_EXCESS_COLUMN, label
