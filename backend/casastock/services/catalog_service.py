# Overview: Public, read-only projection of an owner's products and profile.

from __future__ import annotations

from ..extensions import db
from ..models import Product, Profile, User
from ..models.profiles import DEFAULT_BUSINESS_NAME
from ..errors import NotFoundError


def _profile_view(profile: Profile | None) -> dict:
    if profile is None:
        return {
            "business_name": DEFAULT_BUSINESS_NAME,
            "instagram_url": None,
            "facebook_url": None,
            "website_url": None,
            "phone_number": None,
            "show_catalog_price": True,
            "show_catalog_description": True,
        }
    return {
        "business_name": profile.business_name or DEFAULT_BUSINESS_NAME,
        "instagram_url": profile.instagram_url,
        "facebook_url": profile.facebook_url,
        "website_url": profile.website_url,
        "phone_number": profile.phone_number,
        "show_catalog_price": profile.show_catalog_price,
        "show_catalog_description": profile.show_catalog_description,
    }


def _product_view(product: Product, profile: dict) -> dict:
    return {
        "id": product.id,
        "name": product.name,
        "image_url": product.image_url,
        "selling_price_cents": product.selling_price_cents if profile["show_catalog_price"] else None,
        "description": product.description if profile["show_catalog_description"] else None,
    }


def _load_owner(owner_id: int) -> tuple[User, dict]:
    owner = db.session.query(User).filter_by(id=owner_id, is_active=True).first()
    if owner is None:
        raise NotFoundError("Catalog not found")
    profile = db.session.query(Profile).filter_by(owner_id=owner_id).first()
    return owner, _profile_view(profile)


def get_catalog(owner_id: int) -> dict:
    """Profile header plus every product, newest first. Hidden fields come back null."""
    _, profile = _load_owner(owner_id)
    products = (
        db.session.query(Product)
        .filter(Product.owner_id == owner_id)
        .order_by(Product.created_at.desc(), Product.id.desc())
        .all()
    )
    return {
        "owner_id": owner_id,
        "profile": profile,
        "products": [_product_view(p, profile) for p in products],
    }


def get_catalog_product(product_id: int) -> dict:
    product = db.session.query(Product).filter_by(id=product_id).first()
    if product is None:
        raise NotFoundError("Product not found")
    _, profile = _load_owner(product.owner_id)
    data = _product_view(product, profile)
    data["owner_id"] = product.owner_id
    data["profile"] = profile
    return data
