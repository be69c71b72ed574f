# vocab_practice/endpoints/practice_sets.py
from fastapi import APIRouter, HTTPException
from typing import List

from vocab_practice.models.question import PracticeSet
from vocab_practice.services.question_service import question_service

router = APIRouter()

@router.get("/", response_model=List[PracticeSet], response_model_by_alias=True)
async def get_all_practice_sets():
    return question_service.get_all_practice_sets()

@router.get("/{practice_set_id}", response_model=PracticeSet, response_model_by_alias=True)
async def get_practice_set(practice_set_id: str):
    practice_set = question_service.get_practice_set(practice_set_id)
    if not practice_set:
        raise HTTPException(status_code=404, detail="Practice set not found")
    return practice_set
