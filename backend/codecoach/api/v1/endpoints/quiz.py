import logging

from fastapi import APIRouter, Depends, Request

from codecoach.api.deps import get_quiz_generator
from codecoach.schemas.quiz import GenerationRequest, QuizResponse
from codecoach.utils.generation import QuizGenerator
from codecoach.utils.quiz_files import load_uploaded_quiz


router = APIRouter(prefix="/quiz", tags=["quiz"])
logger = logging.getLogger(__name__)


@router.post("/generate", response_model=QuizResponse)
async def generate_quiz(
    payload: GenerationRequest,
    generator: QuizGenerator = Depends(get_quiz_generator),
) -> QuizResponse:
    quiz = await generator.generate(payload)
    logger.info("Quiz generated", extra={"title": quiz.title, "question_count": len(quiz.questions)})
    return QuizResponse(quiz=quiz.to_dict())


@router.post("/upload", response_model=QuizResponse)
async def upload_quiz(request: Request) -> QuizResponse:
    quiz = load_uploaded_quiz(await request.body())
    return QuizResponse(quiz=quiz.to_dict())
