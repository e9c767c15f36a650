from typing import Dict, Iterable, List, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from models.question import Question, QuestionOption
from models.quiz import QuizQuestion

class QuestionStore:
    """Read access to a quiz's questions and options. Every call hits the database."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_quiz_questions(self, quiz_id: int) -> List[Tuple[Question, int]]:
        """Live questions of the quiz with their display order, ordered for display."""
        result = await self.db.execute(
            select(Question, QuizQuestion.display_order)
            .join(QuizQuestion, QuizQuestion.question_id == Question.id)
            .filter(
                QuizQuestion.quiz_id == quiz_id,
                QuizQuestion.live(),
                Question.live(),
            )
            .order_by(QuizQuestion.display_order, QuizQuestion.id)
        )
        return [(question, display_order) for question, display_order in result.all()]

    async def get_options(self, question_ids: Iterable[int], include_correct: bool = False) -> Dict[int, List[dict]]:
        """Options grouped by question id, ordered for display."""
        question_ids = list(question_ids)
        grouped: Dict[int, List[dict]] = {qid: [] for qid in question_ids}
        if not question_ids:
            return grouped

        result = await self.db.execute(
            select(QuestionOption)
            .filter(QuestionOption.question_id.in_(question_ids), QuestionOption.live())
            .order_by(QuestionOption.question_id, QuestionOption.display_order, QuestionOption.id)
        )
        for option in result.scalars().all():
            item = {
                "id": option.id,
                "option_text_en": option.option_text_en,
                "option_text_ar": option.option_text_ar,
                "display_order": option.display_order,
            }
            if include_correct:
                item["is_correct"] = option.is_correct
            grouped[option.question_id].append(item)
        return grouped

    async def get_question_points(self, quiz_id: int) -> Dict[int, Optional[int]]:
        """Point value of every live question in the quiz, keyed by question id."""
        result = await self.db.execute(
            select(Question.id, Question.points)
            .join(QuizQuestion, QuizQuestion.question_id == Question.id)
            .filter(
                QuizQuestion.quiz_id == quiz_id,
                QuizQuestion.live(),
                Question.live(),
            )
        )
        return {question_id: points for question_id, points in result.all()}

    async def get_option(self, option_id: int) -> Optional[QuestionOption]:
        result = await self.db.execute(
            select(QuestionOption).filter(QuestionOption.id == option_id, QuestionOption.live())
        )
        return result.scalar_one_or_none()
