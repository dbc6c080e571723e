from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Dict, Any
from datetime import datetime

QUESTIONS_PER_DAY = 12
POINTS_PER_CORRECT = 10


# ------------------------------------------------------------------------------
# Daily content
# ------------------------------------------------------------------------------

class TipRecord(BaseModel):
    text: str = Field(..., min_length=1)


class QuestionRecord(BaseModel):
    question: str
    options: List[str] = Field(..., min_length=4, max_length=4)
    correct_answer: int = Field(..., ge=0, le=3)
    explanation: str


class ContentBundle(BaseModel):
    date: str
    crop: str
    language: str
    tips: List[TipRecord]
    questions: List[QuestionRecord]
    generated_at: datetime

    @property
    def key(self) -> str:
        return bundle_key(self.date, self.crop, self.language)


def bundle_key(day: str, crop: str, language: str) -> str:
    return f"{day}_{crop}_{language}".lower()


# ------------------------------------------------------------------------------
# Sessions
# ------------------------------------------------------------------------------

class AnswerRecord(BaseModel):
    question_index: int
    selected_option: int
    is_correct: bool
    answered_at: datetime


class SessionProgress(BaseModel):
    session_id: str
    date: str
    crop: str
    language: str
    answers: List[AnswerRecord] = []
    score: int = 0
    is_completed: bool = False
    streak: int = 0
    created_at: datetime
    expires_at: datetime
    completed_at: Optional[datetime] = None

    @property
    def key(self) -> str:
        return session_key(self.session_id, self.date)

    def answer_for(self, question_index: int) -> Optional[AnswerRecord]:
        for a in self.answers:
            if a.question_index == question_index:
                return a
        return None


def session_key(session_id: str, day: str) -> str:
    return f"{session_id}_{day}"


class PlayerStats(BaseModel):
    session_id: str
    streak: int = 0
    last_completed_date: Optional[str] = None
    games_completed: int = 0
    total_score: int = 0
    best_score: int = 0

    @property
    def average_score(self) -> int:
        if not self.games_completed:
            return 0
        return round(self.total_score / self.games_completed)


class AnswerResult(BaseModel):
    question_index: int
    selected_option: int
    is_correct: bool
    correct_answer: int
    explanation: str
    tip: Optional[TipRecord] = None
    points_earned: int
    total_score: int
    answered_count: int
    is_game_complete: bool
    streak: int = 0
    message: str


# ------------------------------------------------------------------------------
# API payloads
# ------------------------------------------------------------------------------

class AnswerIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    question_index: int = Field(..., alias="questionIndex")
    selected_option: int = Field(..., alias="selectedOption")


class LanguageOut(BaseModel):
    code: str
    name: str
    backend_key: str
    supported: bool


class QuestionView(BaseModel):
    index: int
    question: str
    options: List[str]
    is_answered: bool = False
    correct_answer: Optional[int] = None
    explanation: Optional[str] = None
    user_answer: Optional[int] = None
    is_correct: Optional[bool] = None


class GameView(BaseModel):
    is_new_game: bool
    date: str
    crop: str
    language: str
    questions: List[QuestionView]
    tips: List[Optional[TipRecord]]
    score: int
    answered_count: int
    total_questions: int
    is_completed: bool
    streak: int
    timer: Dict[str, Any]


class StatusView(BaseModel):
    has_active_game: bool
    date: str
    crop: Optional[str] = None
    language: Optional[str] = None
    score: int = 0
    answered_count: int = 0
    total_questions: int = QUESTIONS_PER_DAY
    is_completed: bool = False
    streak: int = 0
    timer: Optional[Dict[str, Any]] = None


class StatsView(BaseModel):
    total_games: int
    total_score: int
    best_score: int
    current_streak: int
    average_score: int
