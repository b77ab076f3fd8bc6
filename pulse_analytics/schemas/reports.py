# pulse_analytics/schemas/reports.py
from typing import Any, Dict, List, Optional, Union
from pydantic import BaseModel, Field

from pulse_analytics.core.config import settings


class ReportQueryIn(BaseModel):
    """Dashboard state sent with every report request."""
    period: str = Field(default_factory=lambda: settings.DEFAULT_PERIOD)
    custom_date: str = ""
    module_type: str = "all"
    filters: Dict[str, Any] = Field(default_factory=dict)
    comparison: Optional[str] = None
    comparison_custom_date: str = ""
    apply_benchmark_filter: bool = False
    benchmark_school_filter: List[str] = Field(default_factory=list)
    set_result_empty: bool = False
    active_modules: Optional[List[str]] = None


class ScoreOverTimeIn(ReportQueryIn):
    question: str
    year: Optional[int] = None


class NpsOverTimeIn(ReportQueryIn):
    year: Optional[int] = None


class MultipleChoiceIn(ReportQueryIn):
    reset_cache: bool = False


class NpsPeriodOut(BaseModel):
    responses: Optional[int] = None
    promoters: Optional[int] = None
    detractors: Optional[int] = None
    passive: Optional[int] = None
    promoters_percentage: Optional[int] = None
    detractors_percentage: Optional[int] = None
    passive_percentage: Optional[int] = None
    score: Optional[int] = None
    parent_score: Optional[int] = None
    student_score: Optional[int] = None
    employee_score: Optional[int] = None


class BenchmarkOut(BaseModel):
    benchmark: Union[int, str]
    percentile: Union[int, str]
    schools: Optional[int] = None


class ChartPoint(BaseModel):
    label: str
    score: Optional[int] = None
    responses: int = 0


class ChartOut(BaseModel):
    period: str
    bucket: str
    points: List[ChartPoint] = Field(default_factory=list)


class MonthPoint(BaseModel):
    month: int
    x: str
    y: float = 0
    totalQuantity: int = 0
    tooltipTimeLabel: Optional[str] = None
    tooltipDataLabel: Optional[str] = None
    tooltipTotalQuantityLabel: Optional[str] = None


class LikertRowOut(BaseModel):
    question: str
    questionable_type: str
    questionable_id: int
    question_name: Optional[str] = None
    module_type: str
    score: int
    answers_count: int
    previous_score: Optional[int] = None
    previous_answers_count: int = 0
    period_diff: Optional[int] = None
    benchmark: Optional[Union[int, str]] = None


class MultipleChoiceRowOut(BaseModel):
    question: str
    questionable_type: str
    questionable_id: int
    question_name: Optional[str] = None
    question_type: str
    module_type: str
    nickname: Optional[str] = None
    label_start: Optional[str] = None
    label_end: Optional[str] = None
    options: Dict[str, int] = Field(default_factory=dict)
    other_option_text: List[str] = Field(default_factory=list)
    answers_count: int = 0
