from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from orderhub.api.deps import require_admin
from orderhub.core.db import get_db
from orderhub.crud.sites import create_site, deactivate_site, get_site, get_site_by_base_url, list_sites
from orderhub.schemas.sites import SiteCreate, SiteCreated, SiteRead


router = APIRouter(prefix="/api/v1/sites", tags=["sites"], dependencies=[Depends(require_admin)])


@router.post("", response_model=SiteCreated, status_code=status.HTTP_201_CREATED)
def create_site_endpoint(payload: SiteCreate, db: Session = Depends(get_db)):
    if get_site_by_base_url(db, payload.base_url) is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Site already registered")
    site, raw_secret = create_site(db, name=payload.name, base_url=payload.base_url)
    return SiteCreated(
        id=site.id,
        name=site.name,
        base_url=site.base_url,
        api_key=site.api_key,
        is_active=site.is_active,
        created_at=site.created_at,
        api_secret=raw_secret,
    )


@router.get("", response_model=list[SiteRead])
def list_sites_endpoint(db: Session = Depends(get_db)):
    return list_sites(db)


@router.get("/{site_id}", response_model=SiteRead)
def get_site_endpoint(site_id: int, db: Session = Depends(get_db)):
    site = get_site(db, site_id)
    if site is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Site not found")
    return site


@router.post("/{site_id}/deactivate", response_model=SiteRead)
def deactivate_site_endpoint(site_id: int, db: Session = Depends(get_db)):
    site = get_site(db, site_id)
    if site is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Site not found")
    return deactivate_site(db, site)
