"""Session resolution endpoints."""

from fastapi import APIRouter, Depends

from aurelius_claims.core.security import get_current_caller, get_session_state
from aurelius_claims.schemas.session import CallerRead, SessionRead
from aurelius_claims.services.roles import Anonymous, Authenticated, Caller, landing_route

router = APIRouter(prefix="/auth", tags=["auth"])


def _caller_read(caller: Caller) -> CallerRead:
    return CallerRead(
        id=caller.user_id,
        email=caller.email,
        full_name=caller.full_name,
        role=caller.role.value,
        landing=landing_route(caller.role),
    )


@router.get("/session", response_model=SessionRead)
def read_session(
    state: Anonymous | Authenticated = Depends(get_session_state),
) -> SessionRead:
    """Tell the client whether it is signed in and where it should go next."""

    if isinstance(state, Anonymous):
        return SessionRead(authenticated=False, redirect_to=state.redirect_to)
    return SessionRead(
        authenticated=True,
        redirect_to=state.landing,
        user=_caller_read(state.caller),
    )


@router.get("/me", response_model=CallerRead)
def read_current_user(caller: Caller = Depends(get_current_caller)) -> CallerRead:
    """Return the authenticated user's profile and role."""

    return _caller_read(caller)
