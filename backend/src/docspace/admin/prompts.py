"""Admin prompt configuration management"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..auth.dependencies import AuthContext, require_admin
from ..database import get_db
from ..models import Prompt, MODEL_PROVIDERS
from .schemas import PromptCreate, PromptUpdate

router = APIRouter(prefix="/prompts")


def _validate_provider(provider: str) -> None:
    if provider not in MODEL_PROVIDERS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"model_provider must be one of: {', '.join(MODEL_PROVIDERS)}",
        )


def _get_prompt(db: Session, function_name: str) -> Prompt:
    prompt = db.query(Prompt).filter(Prompt.function_name == function_name).first()
    if not prompt:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Prompt not found")
    return prompt


@router.get("")
async def list_prompts(
    ctx: Annotated[AuthContext, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
):
    prompts = db.query(Prompt).order_by(Prompt.display_name).all()
    return {"prompts": [p.to_dict() for p in prompts]}


@router.get("/{function_name}")
async def get_prompt(
    function_name: str,
    ctx: Annotated[AuthContext, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
):
    return _get_prompt(db, function_name).to_dict()


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_prompt(
    request: PromptCreate,
    ctx: Annotated[AuthContext, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
):
    _validate_provider(request.model_provider)
    if db.query(Prompt.prompt_id).filter(Prompt.function_name == request.function_name).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Prompt with this function name already exists")

    prompt = Prompt(**request.model_dump(), updated_by=ctx.user_id)
    db.add(prompt)
    db.commit()
    db.refresh(prompt)
    return prompt.to_dict()


@router.put("/{function_name}")
async def update_prompt(
    function_name: str,
    request: PromptUpdate,
    ctx: Annotated[AuthContext, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
):
    """Partial update. Every successful update bumps the version."""
    prompt = _get_prompt(db, function_name)

    changes = request.model_dump(exclude_unset=True)
    if changes.get("model_provider") is not None:
        _validate_provider(changes["model_provider"])

    for field_name, value in changes.items():
        if value is None and field_name not in ("description", "system_prompt"):
            continue
        setattr(prompt, field_name, value)

    prompt.version = (prompt.version or 0) + 1
    prompt.updated_by = ctx.user_id
    db.commit()
    db.refresh(prompt)
    return prompt.to_dict()


@router.delete("/{function_name}")
async def delete_prompt(
    function_name: str,
    ctx: Annotated[AuthContext, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
):
    prompt = _get_prompt(db, function_name)
    db.delete(prompt)
    db.commit()
    return {"message": "Prompt deleted"}
