"""SQLAlchemy models for EDucore.

``MODEL_REGISTRY`` maps the model names used in query call descriptors
(``"Learner"``, ``"FeeInvoice"`` ...) to mapped classes.
"""

from educore.models.tenant import Branch, School, TenantScopedMixin
from educore.models.base import (
    Attendance,
    Class,
    ClassEnrollment,
    FeeInvoice,
    FeePayment,
    FeeStructure,
    FormativeAssessment,
    Learner,
    SummativeResult,
    SummativeTest,
    User,
)

MODEL_REGISTRY: dict[str, type] = {
    model.__name__: model
    for model in (
        School,
        Branch,
        User,
        Learner,
        Class,
        ClassEnrollment,
        Attendance,
        FormativeAssessment,
        SummativeTest,
        SummativeResult,
        FeeStructure,
        FeeInvoice,
        FeePayment,
    )
}

__all__ = [
    "MODEL_REGISTRY",
    "Attendance",
    "Branch",
    "Class",
    "ClassEnrollment",
    "FeeInvoice",
    "FeePayment",
    "FeeStructure",
    "FormativeAssessment",
    "Learner",
    "School",
    "SummativeResult",
    "SummativeTest",
    "TenantScopedMixin",
    "User",
]
