import os
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_briefflow.db")
os.environ.setdefault("CLERK_JWT_ISSUER", "https://clerk.test")
os.environ.setdefault("CLERK_JWKS_URL", "https://clerk.test/.well-known/jwks.json")

from fastapi.testclient import TestClient  # noqa: E402

from briefflow.auth.dependencies import AuthContext, get_current_user  # noqa: E402
from briefflow.db import models  # noqa: E402,F401
from briefflow.db.base import Base, SessionLocal, engine  # noqa: E402
from briefflow.db.deps import get_session  # noqa: E402
from briefflow.db.enums import (  # noqa: E402
    ClubCharacterEnum,
    ClubTierEnum,
    ObjectiveEnum,
    PriorityEnum,
    UserRoleEnum,
)
from briefflow.db.models import (  # noqa: E402
    Brand,
    Club,
    Region,
    RequestTemplate,
    StrategyDocument,
    User,
    UserClub,
)
from briefflow.db.repositories.users import UsersRepository  # noqa: E402
from briefflow.main import app  # noqa: E402
from briefflow.schemas.briefs import BriefDraftRequest  # noqa: E402
from briefflow.services.briefs import create_brief  # noqa: E402


@pytest.fixture()
def db_session():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


def _user(session, *, name, role, clubs=(), managed=()):
    user = User(
        external_id=f"user_{name}",
        email=f"{name}@briefflow.test",
        name=name.replace("_", " ").title(),
        role=role,
        is_active=True,
    )
    session.add(user)
    session.flush()
    for club in clubs:
        session.add(UserClub(user_id=user.id, club_id=club.id, is_manager=club in managed))
    return user


@pytest.fixture()
def seed_data(db_session):
    region = Region(name="Mazowieckie", code="MAZ")
    brand = Brand(name="Zdrofit", code="ZDROFIT")
    other_brand = Brand(name="Fabryka Formy", code="FABRYKA")
    db_session.add_all([region, brand, other_brand])
    db_session.flush()

    db_session.add(
        StrategyDocument(
            brand_id=brand.id,
            title="Zdrofit 2025",
            content="Retention, wellness and regular training habits.",
            is_active=True,
        )
    )

    club = Club(
        brand_id=brand.id,
        region_id=region.id,
        name="Zdrofit Mokotow",
        code="ZDR-MOK",
        city="Warszawa",
        tier=ClubTierEnum.standard,
        club_character=ClubCharacterEnum.community_driven,
        key_member_groups=["students", "office workers"],
        top_activities=[{"name": "yoga", "popularity": "high"}],
        local_decision_brief="Members value group classes and calm evenings.",
    )
    flagship = Club(
        brand_id=brand.id,
        region_id=region.id,
        name="Zdrofit Arkadia",
        code="ZDR-ARK",
        city="Warszawa",
        tier=ClubTierEnum.flagship,
        club_character=ClubCharacterEnum.premium_lifestyle,
        key_member_groups=["professionals"],
    )
    bare_club = Club(
        brand_id=brand.id,
        region_id=region.id,
        name="Zdrofit Wola",
        code="ZDR-WOL",
        city="Warszawa",
        tier=ClubTierEnum.standard,
    )
    db_session.add_all([club, flagship, bare_club])
    db_session.flush()

    social = RequestTemplate(
        name="Social post",
        code="SOCIAL_POST",
        required_fields={},
        default_sla_days=3,
        default_priority=PriorityEnum.medium,
    )
    event = RequestTemplate(
        name="Event kit",
        code="EVENT_KIT",
        required_fields={
            "properties": {"eventName": {"type": "string"}, "eventDate": {"type": "string"}},
            "required": ["eventName", "eventDate"],
        },
        default_sla_days=7,
        default_priority=PriorityEnum.medium,
    )
    logo = RequestTemplate(
        name="Logo change",
        code="LOGO_CHANGE",
        required_fields={},
        default_sla_days=10,
        default_priority=PriorityEnum.low,
        is_blacklisted=True,
        blacklist_reason="Brand identity is managed centrally.",
    )
    db_session.add_all([social, event, logo])
    db_session.flush()

    manager = _user(
        db_session,
        name="manager",
        role=UserRoleEnum.club_manager,
        clubs=(club, flagship),
        managed=(club, flagship),
    )
    other_manager = _user(
        db_session,
        name="other_manager",
        role=UserRoleEnum.club_manager,
        clubs=(bare_club,),
        managed=(bare_club,),
    )
    validator = _user(db_session, name="validator", role=UserRoleEnum.validator, clubs=(club, flagship))
    other_validator = _user(db_session, name="other_validator", role=UserRoleEnum.validator, clubs=(bare_club,))
    producer = _user(db_session, name="producer", role=UserRoleEnum.production)
    second_producer = _user(db_session, name="second_producer", role=UserRoleEnum.production)
    admin = _user(db_session, name="admin", role=UserRoleEnum.admin)
    db_session.commit()

    return SimpleNamespace(
        region=region,
        brand=brand,
        other_brand=other_brand,
        club=club,
        flagship=flagship,
        bare_club=bare_club,
        social=social,
        event=event,
        logo=logo,
        manager=manager,
        other_manager=other_manager,
        validator=validator,
        other_validator=other_validator,
        producer=producer,
        second_producer=second_producer,
        admin=admin,
    )


@pytest.fixture()
def auth_for(db_session):
    def build(user) -> AuthContext:
        memberships = UsersRepository(db_session).club_memberships(user.id)
        return AuthContext(
            user_id=user.id,
            role=user.role,
            club_ids=frozenset(m.club_id for m in memberships),
            managed_club_ids=frozenset(m.club_id for m in memberships if m.is_manager),
        )

    return build


@pytest.fixture()
def now():
    # Monday morning, so business-day arithmetic is easy to follow.
    return datetime(2025, 3, 3, 9, 0, tzinfo=timezone.utc)


@pytest.fixture()
def brief_payload(seed_data):
    def build(**overrides):
        payload = {
            "clubId": str(seed_data.club.id),
            "templateId": str(seed_data.social.id),
            "title": "Yoga retention campaign for loyal members",
            "context": "Invite existing members to the new weekly yoga classes.",
            "objective": ObjectiveEnum.retention.value,
            "kpiDescription": "Class attendance up 15% within a month",
            "deadline": (datetime.now(timezone.utc) + timedelta(days=28)).isoformat(),
            "formats": ["plakat_a4", "ig_post_1080x1440"],
        }
        payload.update(overrides)
        return payload

    return build


@pytest.fixture()
def draft(brief_payload, now):
    """BriefDraftRequest factory with the deadline anchored to the fixed ``now``."""

    def build(**overrides):
        overrides.setdefault("deadline", (now + timedelta(days=28)).isoformat())
        return BriefDraftRequest.model_validate(brief_payload(**overrides))

    return build


@pytest.fixture()
def submitted_brief(db_session, seed_data, auth_for, draft, now):
    def build(**overrides):
        return create_brief(db_session, auth_for(seed_data.manager), draft(**overrides), submit=True, now=now)

    return build


@pytest.fixture()
def api_client(db_session, seed_data, auth_for):
    """TestClient bound to the test session; ``api_client.login(user)`` switches the caller."""
    state = {"auth": auth_for(seed_data.manager)}

    def get_session_override():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides.clear()
    app.dependency_overrides[get_session] = get_session_override
    app.dependency_overrides[get_current_user] = lambda: state["auth"]

    with TestClient(app) as client:
        client.login = lambda user: state.update(auth=auth_for(user))
        yield client

    app.dependency_overrides.clear()
