from sqlalchemy.orm import Session

from orderhub.core.crypto import encrypt_secret
from orderhub.core.keys import generate_api_key, generate_api_secret, hash_secret
from orderhub.models.sites import Site

MAX_KEY_GENERATION_ATTEMPTS = 5


def _generate_unique_api_key(db: Session) -> str:
    for _ in range(MAX_KEY_GENERATION_ATTEMPTS):
        api_key = generate_api_key()
        existing = db.query(Site.id).filter(Site.api_key == api_key).first()
        if not existing:
            return api_key
    raise RuntimeError("Unable to generate a unique site API key.")


def create_site(db: Session, *, name: str, base_url: str) -> tuple[Site, str]:
    """Provision a site and return it with its raw API secret.

    The raw secret is never persisted; callers must hand it to the operator
    now because it cannot be recovered later.
    """
    raw_secret = generate_api_secret()
    site = Site(
        name=name,
        base_url=base_url.rstrip("/"),
        api_key=_generate_unique_api_key(db),
        api_secret_encrypted=encrypt_secret(raw_secret),
        api_secret_hash=hash_secret(raw_secret),
        is_active=True,
    )
    db.add(site)
    db.commit()
    db.refresh(site)
    return site, raw_secret


def get_site(db: Session, site_id: int) -> Site | None:
    return db.query(Site).filter(Site.id == site_id).first()


def get_site_by_base_url(db: Session, base_url: str) -> Site | None:
    return db.query(Site).filter(Site.base_url == base_url.rstrip("/")).first()


def get_active_site_by_api_key(db: Session, api_key: str) -> Site | None:
    return (
        db.query(Site)
        .filter(Site.api_key == api_key, Site.is_active.is_(True))
        .first()
    )


def list_sites(db: Session, *, include_inactive: bool = True) -> list[Site]:
    query = db.query(Site)
    if not include_inactive:
        query = query.filter(Site.is_active.is_(True))
    return query.order_by(Site.created_at.desc(), Site.id.desc()).all()


def deactivate_site(db: Session, site: Site) -> Site:
    site.is_active = False
    db.commit()
    db.refresh(site)
    return site
