"""
Frozen default scoring configuration.
"""
from .models import (
    CrossLabelRule,
    DependencyPenalties,
    HealthConfig,
    IdleAgeConfig,
    MessageScoringConfig,
    ScoringConfig,
    TaskScoringConfig,
    ThreadScoringConfig,
    TimeDecayConfig,
    TimelineScoringConfig,
)


DEFAULT_CATEGORY_WEIGHTS = {
    "LEGAL/Contract_Executed": 95,
    "LEGAL/Contract_Draft": 90,
    "LEGAL/Addendum_or_Amendment": 88,
    "LEGAL/NDA_or_Clearance": 82,
    "LEGAL/Insurance_Indemnity": 80,
    "LEGAL/Compliance": 76,
    "FINANCE/Settlement": 94,
    "FINANCE/Invoice": 86,
    "FINANCE/Payment_Remittance": 70,
    "FINANCE/Banking_Details": 96,
    "FINANCE/Tax_Docs": 82,
    "FINANCE/Expenses_Receipts": 66,
    "FINANCE/Royalties_Publishing": 62,
    "LOGISTICS/Itinerary_DaySheet": 83,
    "LOGISTICS/Travel": 90,
    "LOGISTICS/Accommodation": 78,
    "LOGISTICS/Ground_Transport": 74,
    "LOGISTICS/Visas_Immigration": 95,
    "LOGISTICS/Technical_Advance": 82,
    "LOGISTICS/Passes_Access": 70,
    "BOOKING/Offer": 86,
    "BOOKING/Hold_or_Availability": 72,
    "BOOKING/Confirmation": 90,
    "BOOKING/Reschedule_or_Cancel": 96,
    "PROMO/Promo_Time_Request": 78,
    "PROMO/Press_Feature": 60,
    "PROMO/Radio_Playlist": 58,
    "PROMO/Deliverables": 74,
    "PROMO/Promos_Submission": 50,
    "ASSETS/Artwork": 55,
    "ASSETS/Audio": 68,
    "ASSETS/Video": 62,
    "ASSETS/Photos": 48,
    "ASSETS/Logos_Brand": 52,
    "ASSETS/EPK_OneSheet": 56,
    "FAN/Support_or_Thanks": 20,
    "FAN/Request": 28,
    "FAN/Issues_or_Safety": 72,
    "MISC/Uncategorized": 18,
}

DEFAULT_TRIAGE_ADJUSTMENTS = {
    "unassigned": 12,
    "acknowledged": -8,
    "snoozed": -24,
    "resolved": -80,
}

DEFAULT_CROSS_LABEL_RULES = (
    CrossLabelRule(prefix="approval/", weight=22, description="Pending approval"),
    CrossLabelRule(prefix="risk/", weight=24, description="Risk flagged"),
    CrossLabelRule(prefix="status/escalated", weight=18, description="Escalated thread"),
    CrossLabelRule(prefix="status/pending_reply", weight=14, description="Awaiting reply"),
)

DEFAULT_THREAD_WEIGHTS = {
    "recency": 0.25,
    "heat": 0.2,
    "urgency": 0.25,
    "impact": 0.15,
    "outstanding": 0.15,
}


DEFAULT_SCORING_CONFIG = ScoringConfig(
    time=TimeDecayConfig(),
    email=MessageScoringConfig(
        category_weights=DEFAULT_CATEGORY_WEIGHTS,
        triage_state_adjustments=DEFAULT_TRIAGE_ADJUSTMENTS,
        cross_label_rules=DEFAULT_CROSS_LABEL_RULES,
        idle_age=IdleAgeConfig(),
    ),
    tasks=TaskScoringConfig(status_boosts={"in_progress": 8, "waiting": 4}),
    timeline=TimelineScoringConfig(
        conflict_penalties={"error": 25, "warning": 15, "default": 15},
        dependency_penalties=DependencyPenalties(),
    ),
    health=HealthConfig(),
    threads=ThreadScoringConfig(weights=DEFAULT_THREAD_WEIGHTS),
)
