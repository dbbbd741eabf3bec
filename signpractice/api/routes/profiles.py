from fastapi import APIRouter, HTTPException, Request

from signpractice.api.schemas import ProfileOut

router = APIRouter(prefix="/api/v1", tags=["profiles"])


@router.get("/profiles", response_model=list[ProfileOut])
def list_profiles(request: Request):
    profiles = request.app.state.profiles
    return [{"name": name, "config": cfg} for name, cfg in sorted(profiles.items())]


@router.get("/profiles/{name}", response_model=ProfileOut)
def get_profile(name: str, request: Request):
    cfg = request.app.state.profiles.get(name)
    if cfg is None:
        raise HTTPException(404, "Profile not found")
    return {"name": name, "config": cfg}
