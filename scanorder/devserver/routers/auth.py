import uuid

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import JSONResponse

from scanorder.devserver.deps import cookie_token, get_state, optional_claims
from scanorder.devserver.security import create_token, hash_pw, verify_pw
from scanorder.devserver.state import DevState
from scanorder.schemas.common import GuestTokenIn, LoginIn, RegisterIn

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _public(u: dict) -> dict:
    return {k: v for k, v in u.items() if k != "pass_hash"}


def _set_session_cookie(response: Response, st: DevState, token: str):
    response.set_cookie(st.session_cookie, token, httponly=True, samesite="lax", path="/", max_age=86400)


@router.post("/guest-token")
def guest_token(body: GuestTokenIn, st: DevState = Depends(get_state)):
    if not st.guest_tokens_enabled:
        return JSONResponse(status_code=503, content={"success": False, "message": "Guest ordering is disabled"})
    if body.table_id and st.tables and body.table_id not in st.tables:
        raise HTTPException(404, detail=f"Table {body.table_id} not found")

    sub = f"guest:{body.device_id}"
    st.users.setdefault(sub, {"id": sub, "name": "Guest", "isGuest": True, "deviceId": body.device_id})
    return {"success": True, "token": create_token(sub, guest=True, table_id=body.table_id)}


@router.post("/register")
def register(body: RegisterIn, response: Response, st: DevState = Depends(get_state)):
    if any(u.get("email") == body.email for u in st.users.values()):
        raise HTTPException(409, detail="Email already registered")
    uid = uuid.uuid4().hex
    st.users[uid] = {
        "id": uid, "name": body.name, "email": body.email, "phone": body.phone,
        "isGuest": False, "loyaltyPoints": 0, "pass_hash": hash_pw(body.password),
    }
    token = create_token(uid)
    _set_session_cookie(response, st, token)
    return {"success": True, "token": token, "user": _public(st.users[uid])}


@router.post("/login")
def login(body: LoginIn, response: Response, st: DevState = Depends(get_state)):
    user = next((u for u in st.users.values() if u.get("email") == body.email), None)
    if not user or not verify_pw(user["pass_hash"], body.password):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    token = create_token(user["id"])
    _set_session_cookie(response, st, token)
    return {"success": True, "token": token, "user": _public(user)}


@router.get("/me")
def me(request: Request, claims: dict | None = Depends(optional_claims), st: DevState = Depends(get_state)):
    if not claims or claims["sub"] not in st.users:
        raise HTTPException(status_code=401, detail="Not authenticated")
    out = {"success": True, "user": _public(st.users[claims["sub"]])}
    # cookie sessions get their token echoed so clients can use a bearer header
    if "authorization" not in request.headers:
        out["token"] = cookie_token(request)
    return out


@router.post("/logout")
def logout(response: Response, st: DevState = Depends(get_state)):
    response.delete_cookie(st.session_cookie, path="/")
    return {"success": True}
