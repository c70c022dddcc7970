"""
Module: studio_kernel.exceptions
Responsibility: Typed exception hierarchy for the instructor pay engine.
    Every exception carries a machine-readable ``code`` class attribute and
    stores its context as attributes, so structured log records keep the
    details without parsing message strings.
Architecture position: Kernel.  Imported by engines, config and modules.
    MUST NOT import from any other package in this project.

Error categories:
    - CatalogError:   a referenced instructor or period does not exist.
    - TariffError:    a discipline or category has no usable tariff.
    - VersusConfigurationError: a versus class with an invalid co-instructor count.
    - EvaluationError: the formula-string evaluator rejected an expression.
    - PaymentError:   a stored payment cannot be recalculated.
    - ConfigurationError: an engine settings file is invalid.
"""


class StudioPayError(Exception):
    """
    Base exception for all instructor pay errors.

    All subclasses define a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "STUDIO_PAY_ERROR"


# Catalog-related exceptions


class CatalogError(StudioPayError):
    """Base exception for catalog lookups."""

    code: str = "CATALOG_ERROR"


class InstructorNotFoundError(CatalogError):
    """Instructor has no record for the requested period."""

    code: str = "INSTRUCTOR_NOT_FOUND"

    def __init__(self, instructor_id: str, period_id: str):
        self.instructor_id = instructor_id
        self.period_id = period_id
        super().__init__(
            f"Instructor not found: {instructor_id} (period {period_id})"
        )


class PeriodNotFoundError(CatalogError):
    """Pay period with the given ID was not found."""

    code: str = "PERIOD_NOT_FOUND"

    def __init__(self, period_id: str):
        self.period_id = period_id
        super().__init__(f"Period not found: {period_id}")


# Tariff-related exceptions


class TariffError(StudioPayError):
    """Base exception for tariff resolution errors."""

    code: str = "TARIFF_ERROR"


class MissingTariffError(TariffError):
    """No payment parameters are defined for a discipline/category pair."""

    code: str = "MISSING_TARIFF"

    def __init__(self, discipline_id: str, category: str):
        self.discipline_id = discipline_id
        self.category = category
        super().__init__(
            f"No payment parameters for category {category} "
            f"in discipline {discipline_id}"
        )


class TariffConfigurationError(TariffError):
    """Payment parameters cannot price a class (e.g. no tiers defined)."""

    code: str = "TARIFF_CONFIGURATION_ERROR"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid tariff configuration: {reason}")


class VersusConfigurationError(StudioPayError):
    """A class is marked as versus but its co-instructor count is below 2."""

    code: str = "VERSUS_CONFIGURATION_ERROR"

    def __init__(self, class_id: str, versus_count: int):
        self.class_id = class_id
        self.versus_count = versus_count
        super().__init__(
            f"Versus class {class_id} has versus_count={versus_count}; "
            f"at least 2 instructors are required"
        )


# Expression evaluation exceptions


class EvaluationError(StudioPayError):
    """A formula expression could not be evaluated."""

    code: str = "EVALUATION_ERROR"

    def __init__(self, expression: str, reason: str):
        self.expression = expression
        self.reason = reason
        super().__init__(f"Cannot evaluate '{expression}': {reason}")


class UndefinedVariableError(EvaluationError):
    """Expression references a variable that was not supplied."""

    code: str = "UNDEFINED_VARIABLE"

    def __init__(self, expression: str, name: str):
        self.name = name
        super().__init__(expression, f"undefined variable '{name}'")


# Payment-related exceptions


class PaymentError(StudioPayError):
    """Base exception for payment record errors."""

    code: str = "PAYMENT_ERROR"


class PaymentLockedError(PaymentError):
    """Stored payment is in a status that forbids recalculation."""

    code: str = "PAYMENT_LOCKED"

    def __init__(self, instructor_id: str, period_id: str, status: str):
        self.instructor_id = instructor_id
        self.period_id = period_id
        self.status = status
        super().__init__(
            f"Payment for instructor {instructor_id} in period {period_id} "
            f"is {status} and cannot be recalculated"
        )


# Configuration exceptions


class ConfigurationError(StudioPayError):
    """Engine settings are missing or invalid."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, reason: str, source: str | None = None):
        self.reason = reason
        self.source = source
        where = f" ({source})" if source else ""
        super().__init__(f"Invalid engine settings{where}: {reason}")
