from enum import Enum
from typing import Dict, List


class Subject(str, Enum):
    MATHS = "Maths"
    SCIENCE = "Science"


class Difficulty(str, Enum):
    SIMPLE = "Simple"
    MEDIUM = "Medium"
    ADVANCED = "Advanced"


class Role(str, Enum):
    USER = "user"
    MODEL = "model"


MATHS_TOPICS: List[str] = [
    "Algebra",
    "Geometry",
    "Fractions",
    "Percentages",
    "Statistics",
    "Number Theory",
    "Probability",
]

SCIENCE_TOPICS: List[str] = [
    "Biology",
    "Chemistry",
    "Physics",
    "Earth Science",
    "Space",
    "Genetics",
    "Environmental Science",
]

TOPICS_BY_SUBJECT: Dict[Subject, List[str]] = {
    Subject.MATHS: MATHS_TOPICS,
    Subject.SCIENCE: SCIENCE_TOPICS,
}


def topics_for(subject: Subject) -> List[str]:
    return list(TOPICS_BY_SUBJECT[subject])
