from __future__ import annotations

from ..extensions import db
from casastock.time_utils import to_utc_z


DEFAULT_BUSINESS_NAME = "Catalog"


class Profile(db.Model):
    """Business profile: drives the public catalog's presentation only."""
    __tablename__ = "profiles"
    __table_args__ = (
        db.UniqueConstraint("owner_id", name="uq_profiles_owner"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    business_name = db.Column(db.String(255), nullable=True)
    instagram_url = db.Column(db.String(512), nullable=True)
    facebook_url = db.Column(db.String(512), nullable=True)
    website_url = db.Column(db.String(512), nullable=True)
    phone_number = db.Column(db.String(32), nullable=True)

    show_catalog_price = db.Column(db.Boolean, nullable=False, default=True)
    show_catalog_description = db.Column(db.Boolean, nullable=False, default=True)

    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_dict(self) -> dict:
        return {
            "owner_id": self.owner_id,
            "business_name": self.business_name,
            "instagram_url": self.instagram_url,
            "facebook_url": self.facebook_url,
            "website_url": self.website_url,
            "phone_number": self.phone_number,
            "show_catalog_price": self.show_catalog_price,
            "show_catalog_description": self.show_catalog_description,
            "updated_at": to_utc_z(self.updated_at),
        }
