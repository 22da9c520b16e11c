# Overview: Service-layer operations for the business profile.

from __future__ import annotations

from ..extensions import db
from ..models import Profile
from ..validation import ModelValidationPolicy, validate_payload


PROFILE_POLICY = ModelValidationPolicy(
    writable_fields={
        "business_name",
        "instagram_url",
        "facebook_url",
        "website_url",
        "phone_number",
        "show_catalog_price",
        "show_catalog_description",
    },
)


def get_profile(owner_id: int) -> Profile | None:
    return db.session.query(Profile).filter_by(owner_id=owner_id).first()


def upsert_profile(owner_id: int, payload: dict) -> Profile:
    """Create the owner's profile on first save, otherwise patch it."""
    patch = validate_payload(model=Profile, payload=payload, policy=PROFILE_POLICY)

    profile = get_profile(owner_id)
    if profile is None:
        profile = Profile(owner_id=owner_id)
        db.session.add(profile)

    for k, v in patch.items():
        setattr(profile, k, v)

    db.session.commit()
    return profile
