"""Data models for analyses, session records and weekly reports.

Fields are snake_case in Python and camelCase on the wire, matching what the
browser client sends and stores.
"""
import typing as t

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict:
        return self.model_dump(by_alias=True)


class EmotionWord(CamelModel):
    word: str
    count: int = Field(default=1, ge=0)


class FourQuestionsAnalysis(CamelModel):
    feeling: str = ""
    needs: str = ""
    challenges: str = ""
    insights: str = ""


class GrowthSummary(CamelModel):
    discovered: str = ""
    reminder: str = ""


class EmotionData(CamelModel):
    transcript: str = ""
    emotion_words: t.List[EmotionWord] = Field(default_factory=list)
    insights: t.List[str] = Field(default_factory=list)
    four_questions_analysis: FourQuestionsAnalysis = Field(default_factory=FourQuestionsAnalysis)
    growth_summary: GrowthSummary = Field(default_factory=GrowthSummary)
    suggested_benefits: t.List[str] = Field(default_factory=list)
    selected_benefits: t.List[str] = Field(default_factory=list)


class SessionRecordRequest(EmotionData):
    """Body of a new record. Stored records are loaded as plain EmotionData."""

    @model_validator(mode="after")
    def check_selected_benefits(self):
        unknown = [b for b in self.selected_benefits if b not in self.suggested_benefits]
        if unknown:
            raise ValueError(f"selectedBenefits not among suggestedBenefits: {unknown}")
        return self


class EmotionRecord(CamelModel):
    id: str
    timestamp: str
    emotion_data: EmotionData
    session_number: int = Field(ge=1, le=7)
    # legacy records were written before cycles existed
    cycle_number: int = Field(default=1, ge=1)


class Cycle(CamelModel):
    cycle_number: int = Field(default=1, ge=1)
    session_count: int = Field(default=0, ge=0)
    start_date: str


class SessionInfo(CamelModel):
    session_number: int
    should_generate_report: bool
    cycle_number: int
    start_time: str


class EmotionTrend(CamelModel):
    session: int
    dominant_emotion: str
    intensity: int = Field(ge=0, le=100)
    date: str


class WeeklyReport(CamelModel):
    start_date: str
    end_date: str
    total_sessions: int = 7
    emotion_trends: t.List[EmotionTrend]
    insights: t.List[str]
    personal_growth: str
    recommendations: t.List[str]
    progress_summary: str


# ----- Request bodies -----

class AnalyzeRequest(BaseModel):
    # left untyped so non-string input gets the same 400 as empty text
    text: t.Any = None


class WeeklyReportRequest(CamelModel):
    records: t.List[EmotionRecord]
