from enum import Enum


class UserRoleEnum(str, Enum):
    club_manager = "club_manager"
    validator = "validator"
    production = "production"
    admin = "admin"


class ClubTierEnum(str, Enum):
    standard = "standard"
    flagship = "flagship"
    vip = "vip"


class ClubCharacterEnum(str, Enum):
    premium_lifestyle = "premium_lifestyle"
    mass_market = "mass_market"
    performance_focused = "performance_focused"
    community_driven = "community_driven"
    functional_compact = "functional_compact"
    custom = "custom"


class ObjectiveEnum(str, Enum):
    acquisition = "acquisition"
    retention = "retention"
    attendance = "attendance"
    upsell = "upsell"
    awareness = "awareness"
    other = "other"


class PriorityEnum(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"


PRIORITY_ORDER = [PriorityEnum.low, PriorityEnum.medium, PriorityEnum.high, PriorityEnum.critical]


class BriefStatusEnum(str, Enum):
    draft = "draft"
    submitted = "submitted"
    changes_requested = "changes_requested"
    approved = "approved"
    rejected = "rejected"
    cancelled = "cancelled"


class ApprovalDecisionEnum(str, Enum):
    approved = "approved"
    changes_requested = "changes_requested"
    rejected = "rejected"


class OutcomeEnum(str, Enum):
    positive = "positive"
    neutral = "neutral"
    negative = "negative"


class TaskStatusEnum(str, Enum):
    queued = "queued"
    in_progress = "in_progress"
    in_review = "in_review"
    needs_changes = "needs_changes"
    approved = "approved"
    delivered = "delivered"
    closed = "closed"


class EscalationTypeEnum(str, Enum):
    EXCEPTION = "EXCEPTION"
    ESCALATION = "ESCALATION"


class NotificationTypeEnum(str, Enum):
    brief_submitted = "brief_submitted"
    brief_resubmitted = "brief_resubmitted"
    brief_edited_by_validator = "brief_edited_by_validator"
    brief_approved = "brief_approved"
    changes_requested = "changes_requested"
    brief_rejected = "brief_rejected"
    new_task = "new_task"
    task_delivered = "task_delivered"
