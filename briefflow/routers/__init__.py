from briefflow.routers import approvals, brands, briefs, clubs, notifications, policy, production, templates

__all__ = [
    "briefs",
    "approvals",
    "production",
    "policy",
    "clubs",
    "brands",
    "templates",
    "notifications",
]
