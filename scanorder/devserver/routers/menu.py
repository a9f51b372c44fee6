from fastapi import APIRouter, Depends, HTTPException

from scanorder.devserver.deps import get_state
from scanorder.devserver.state import DevState

router = APIRouter(prefix="/api", tags=["menu"])


def categories_for(st: DevState) -> list[dict]:
    return sorted((c for c in st.categories.values() if c["isActive"]), key=lambda c: c["order"])


def subcategories_for(st: DevState, category_id: str) -> list[dict]:
    subs = [s for s in st.subcategories.values() if s["categoryId"] == category_id and s["isActive"]]
    return sorted(subs, key=lambda s: s["order"])


def items_for_venue(st: DevState, venue_id: str) -> list[dict]:
    return [m for m in st.menu_items.values() if m["venueId"] == venue_id and m["isActive"]]


@router.get("/categories")
def list_categories(st: DevState = Depends(get_state)):
    return {"success": True, "data": categories_for(st)}


@router.get("/categories/{category_id}/subcategories")
def list_subcategories(category_id: str, st: DevState = Depends(get_state)):
    if category_id not in st.categories:
        raise HTTPException(404, detail=f"Category {category_id} not found")
    return {"success": True, "data": subcategories_for(st, category_id)}


@router.get("/menu-items")
def list_menu_items(categoryId: str | None = None, subcategoryId: str | None = None,
                    st: DevState = Depends(get_state)):
    items = [m for m in st.menu_items.values() if m["isActive"]]
    if categoryId:
        items = [m for m in items if categoryId in m["categories"]]
    if subcategoryId:
        items = [m for m in items if subcategoryId in m["subCategories"]]
    return {"success": True, "data": items}


@router.get("/venues/{venue_id}")
def get_venue(venue_id: str, st: DevState = Depends(get_state)):
    v = st.venues.get(venue_id)
    if not v:
        raise HTTPException(404, detail=f"Venue {venue_id} not found")
    return {"success": True, "data": v}


@router.get("/venues/{venue_id}/menu-items")
def venue_menu_items(venue_id: str, st: DevState = Depends(get_state)):
    if venue_id not in st.venues:
        raise HTTPException(404, detail=f"Venue {venue_id} not found")
    return {"success": True, "data": items_for_venue(st, venue_id)}
