from fastapi import APIRouter, Request

from signpractice.api.schemas import LabelsOut

router = APIRouter(prefix="/api/v1", tags=["labels"])

# classifier outputs that are not something a lesson can ask for
NON_SIGN_LABELS = {"SPACE", "NOTHING"}


@router.get("/labels", response_model=LabelsOut)
def list_labels(request: Request):
    labels = list(request.app.state.labels)
    return {
        "labels": labels,
        "lesson_signs": [l for l in labels if l not in NON_SIGN_LABELS],
    }
