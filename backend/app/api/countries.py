from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from app.services.countries import get_country_by_code, get_regions, get_schengen_countries, search_countries

router = APIRouter()


@router.get("")
async def list_countries(
    q: Optional[str] = None,
    schengen: Optional[bool] = None,
    region: Optional[str] = None,
    limit: int = Query(100, ge=1, le=250),
):
    countries = search_countries(q or "", limit=250)
    if schengen is not None:
        countries = [c for c in countries if c.is_schengen == schengen]
    if region:
        countries = [c for c in countries if c.region == region]
    return [asdict(c) for c in countries[:limit]]


@router.get("/schengen")
async def schengen_countries():
    return [asdict(c) for c in get_schengen_countries()]


@router.get("/regions")
async def regions():
    return get_regions()


@router.get("/{code}")
async def get_country(code: str):
    country = get_country_by_code(code)
    if country is None:
        raise HTTPException(status_code=404, detail="Country not found")
    return asdict(country)
