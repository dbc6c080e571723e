from fastapi import APIRouter

router = APIRouter(tags=["Misc"])


@router.get("/")
def root():
    return {"message": "CropGen Daily Game API", "status": "running"}


@router.get("/health")
def health():
    return {"status": "ok"}
