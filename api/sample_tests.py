"""
api/sample_tests.py — 로컬 응시 저장소에 내장된 샘플 시험
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class SampleQuestion(BaseModel):
    id: str
    text: str
    options: List[str] = Field(..., min_length=2)
    answer: int = Field(..., ge=0, description="정답 보기 인덱스")


class SampleTest(BaseModel):
    id: str
    title: str
    duration_minutes: int = Field(..., gt=0)
    instructions: Optional[List[str]] = None
    questions: List[SampleQuestion]

    def correct_answers(self) -> Dict[str, int]:
        return {q.id: q.answer for q in self.questions}


_GENERAL_APTITUDE = SampleTest(
    id="general-aptitude",
    title="General Aptitude Mock Test 1",
    duration_minutes=30,
    instructions=[
        "This test contains 5 questions. Each question carries 1 mark.",
        "There is no negative marking.",
        "The test will auto-submit when the time runs out.",
        "Pressing ESC during the test submits it immediately after confirmation.",
    ],
    questions=[
        SampleQuestion(
            id="ga-1",
            text="If 3x + 7 = 22, what is the value of x?",
            options=["3", "5", "7", "15"],
            answer=1,
        ),
        SampleQuestion(
            id="ga-2",
            text="Choose the word most nearly opposite in meaning to 'ABUNDANT'.",
            options=["Plentiful", "Scarce", "Ample", "Lavish"],
            answer=1,
        ),
        SampleQuestion(
            id="ga-3",
            text="A train covers 180 km in 3 hours. What is its average speed?",
            options=["50 km/h", "55 km/h", "60 km/h", "65 km/h"],
            answer=2,
        ),
        SampleQuestion(
            id="ga-4",
            text="Find the next number in the series: 2, 6, 12, 20, 30, ?",
            options=["40", "42", "44", "36"],
            answer=1,
        ),
        SampleQuestion(
            id="ga-5",
            text="Which river is the longest in India?",
            options=["Yamuna", "Godavari", "Ganga", "Narmada"],
            answer=2,
        ),
    ],
)

_QUANT_BASICS = SampleTest(
    id="quant-basics",
    title="Quantitative Aptitude Basics",
    duration_minutes=20,
    questions=[
        SampleQuestion(
            id="qb-1",
            text="What is 15% of 240?",
            options=["24", "30", "36", "40"],
            answer=2,
        ),
        SampleQuestion(
            id="qb-2",
            text="The LCM of 12 and 18 is:",
            options=["24", "36", "54", "72"],
            answer=1,
        ),
        SampleQuestion(
            id="qb-3",
            text="A shopkeeper sells an item for 660 at a 10% profit. What was the cost price?",
            options=["594", "600", "610", "620"],
            answer=1,
        ),
        SampleQuestion(
            id="qb-4",
            text="If the ratio of boys to girls is 3:2 in a class of 40, how many girls are there?",
            options=["12", "16", "20", "24"],
            answer=1,
        ),
        SampleQuestion(
            id="qb-5",
            text="Simple interest on 5000 at 8% per annum for 2 years is:",
            options=["400", "800", "850", "1000"],
            answer=1,
        ),
    ],
)

SAMPLE_TESTS: Dict[str, SampleTest] = {
    t.id: t for t in (_GENERAL_APTITUDE, _QUANT_BASICS)
}
