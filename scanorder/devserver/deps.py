from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from scanorder.devserver.security import decode_token
from scanorder.devserver.state import DevState

auth_scheme = HTTPBearer(auto_error=False)

def get_state(request: Request) -> DevState:
    return request.app.state.dev

def cookie_token(request: Request) -> str | None:
    # cookie-authenticated requests, as a browser would send them
    st = get_state(request)
    for name in (st.session_cookie, "access_token", "auth_token"):
        if request.cookies.get(name):
            return request.cookies[name]
    return None

def _token(request: Request, creds: HTTPAuthorizationCredentials | None) -> str | None:
    if creds:
        return creds.credentials
    return cookie_token(request)

def optional_claims(request: Request, creds: HTTPAuthorizationCredentials | None = Depends(auth_scheme)) -> dict | None:
    tok = _token(request, creds)
    return decode_token(tok) if tok else None

def require_claims(claims: dict | None = Depends(optional_claims)) -> dict:
    if not claims:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return claims
