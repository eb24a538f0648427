"""
Kiosk Display API Endpoints
Local endpoints the touchscreen renderer drives the time clock through.

Every mutating endpoint returns the full KioskView snapshot so the display
never has to merge partial state.
"""
from fastapi import APIRouter, Depends, HTTPException, Path, Request

from timeclock.schemas.kiosk import (
    EditDraftUpdate,
    KioskView,
    PendingAction,
    StoreCodeInput,
    VisibilityInput,
)
from timeclock.services.kiosk_session import KEYPAD_KEYS, KioskSession

router = APIRouter()


def get_kiosk_session(request: Request) -> KioskSession:
    session = getattr(request.app.state, "kiosk_session", None)
    if session is None:
        raise HTTPException(status_code=503, detail="Kiosk session not started")
    return session


@router.get("/state", response_model=KioskView)
async def get_state(session: KioskSession = Depends(get_kiosk_session)):
    """Current screen snapshot, polled by the display."""
    return session.snapshot()


# ============== Store Code ==============

@router.put("/store-code", response_model=KioskView)
async def set_store_code(body: StoreCodeInput, session: KioskSession = Depends(get_kiosk_session)):
    session.set_store_code(body.code)
    return session.snapshot()


@router.post("/store/verify", response_model=KioskView)
async def verify_store(session: KioskSession = Depends(get_kiosk_session)):
    await session.verify_store()
    return session.snapshot()


@router.post("/store/change", response_model=KioskView)
async def change_store(session: KioskSession = Depends(get_kiosk_session)):
    session.change_store()
    return session.snapshot()


# ============== PIN + Punch ==============

@router.post("/keypad/{key}", response_model=KioskView)
async def press_key(
    key: str = Path(..., max_length=3),
    session: KioskSession = Depends(get_kiosk_session),
):
    """Digit, CLR or DEL. The 4th digit submits the PIN after a short delay."""
    if key not in KEYPAD_KEYS:
        raise HTTPException(status_code=400, detail=f"Unknown keypad key: {key}")
    session.press_key(key)
    return session.snapshot()


@router.post("/actions/{action}", response_model=KioskView)
async def select_action(action: PendingAction, session: KioskSession = Depends(get_kiosk_session)):
    session.select_action(action)
    return session.snapshot()


@router.post("/countdown/cancel", response_model=KioskView)
async def cancel_countdown(session: KioskSession = Depends(get_kiosk_session)):
    session.cancel_countdown()
    return session.snapshot()


@router.post("/done", response_model=KioskView)
async def done(session: KioskSession = Depends(get_kiosk_session)):
    session.done()
    return session.snapshot()


# ============== My Hours ==============

@router.post("/my-hours", response_model=KioskView)
async def open_my_hours(session: KioskSession = Depends(get_kiosk_session)):
    await session.open_my_hours()
    return session.snapshot()


@router.post("/my-hours/back", response_model=KioskView)
async def back_to_confirm(session: KioskSession = Depends(get_kiosk_session)):
    session.back_to_confirm()
    return session.snapshot()


@router.post("/entries/{entry_id}/edit", response_model=KioskView)
async def open_edit_entry(entry_id: str, session: KioskSession = Depends(get_kiosk_session)):
    session.open_edit_entry(entry_id)
    return session.snapshot()


@router.put("/edit", response_model=KioskView)
async def update_edit_draft(body: EditDraftUpdate, session: KioskSession = Depends(get_kiosk_session)):
    session.update_edit_draft(body)
    return session.snapshot()


@router.post("/edit/back", response_model=KioskView)
async def back_to_my_hours(session: KioskSession = Depends(get_kiosk_session)):
    session.back_to_my_hours()
    return session.snapshot()


@router.post("/edit/submit", response_model=KioskView)
async def submit_edit_request(session: KioskSession = Depends(get_kiosk_session)):
    await session.submit_edit_request()
    return session.snapshot()


# ============== Display Signals ==============

@router.post("/touch", response_model=KioskView)
async def touch(session: KioskSession = Depends(get_kiosk_session)):
    """Any touch on the screen; resets the idle timer on the hours screens."""
    session.touch()
    return session.snapshot()


@router.post("/visibility", response_model=KioskView)
async def set_visibility(body: VisibilityInput, session: KioskSession = Depends(get_kiosk_session)):
    await session.set_visibility(body.visible)
    return session.snapshot()
