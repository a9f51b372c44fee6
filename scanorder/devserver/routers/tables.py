from fastapi import APIRouter, Depends, HTTPException

from scanorder.devserver.deps import get_state
from scanorder.devserver.routers.menu import categories_for, items_for_venue, subcategories_for
from scanorder.devserver.state import DevState

router = APIRouter(prefix="/api/tables", tags=["tables"])


def _table(st: DevState, table_id: str) -> dict:
    t = st.tables.get(table_id)
    if not t:
        raise HTTPException(404, detail=f"Table with ID {table_id} not found")
    return t


@router.get("/{table_id}")
def get_table(table_id: str, st: DevState = Depends(get_state)):
    t = _table(st, table_id)
    if not t.get("isActive", True):
        raise HTTPException(403, detail=f"Table with ID {table_id} is not active")
    return {"success": True, "data": t}


@router.get("/{table_id}/status")
def table_status(table_id: str, st: DevState = Depends(get_state)):
    t = _table(st, table_id)
    venue = st.venues.get(t.get("venueId"))
    return {"success": True, "data": {
        "exists": True,
        "isAvailable": t.get("isActive", True) and not t.get("isOccupied", False),
        "venue": venue,
        "table": t,
    }}


@router.get("/{table_id}/menu")
def table_menu(table_id: str, st: DevState = Depends(get_state)):
    t = _table(st, table_id)
    venue = st.venues.get(t.get("venueId"))
    if not venue:
        raise HTTPException(404, detail=f"No venue for table {table_id}")
    cats = categories_for(st)
    return {"success": True, "data": {
        "venue": {k: venue[k] for k in ("_id", "name", "description")},
        "menu": {
            "categories": cats,
            "subcategories": {c["_id"]: subcategories_for(st, c["_id"]) for c in cats},
            "menuItems": items_for_venue(st, venue["_id"]),
        },
    }}
