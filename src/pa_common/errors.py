"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Admin/Auth
  2xxx: Balance
  3xxx: Plan
  5xxx: Position
  6xxx: Distribution
  9xxx: System
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


class DataIntegrityError(AppError):
    """A position whose stored data cannot be trusted; left untouched for investigation."""


# --- 1xxx: Admin/Auth ---

class InvalidAdminKeyError(AppError):
    def __init__(self) -> None:
        super().__init__(1001, "Invalid or missing admin key", 401)


class InvalidPositionKindError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(1002, detail, 422)


# --- 2xxx: Balance ---

class InvalidAmountError(AppError):
    def __init__(self, amount: int) -> None:
        super().__init__(2002, f"Credit amount must be positive, got {amount} cents", 422)


# --- 3xxx: Plan ---

class PlanNotFoundError(DataIntegrityError):
    def __init__(self, position_id: str, plan_id: str) -> None:
        super().__init__(
            3001, f"Position {position_id} references missing plan {plan_id}", 422
        )


class PlanInactiveError(DataIntegrityError):
    def __init__(self, position_id: str, plan_id: str) -> None:
        super().__init__(
            3002, f"Position {position_id} references inactive plan {plan_id}", 422
        )


class InvalidPlanTermsError(DataIntegrityError):
    def __init__(self, plan_id: str, detail: str) -> None:
        super().__init__(3003, f"Plan {plan_id} has invalid terms: {detail}", 422)


# --- 5xxx: Position ---

class PositionNotFoundError(AppError):
    def __init__(self, position_id: str) -> None:
        super().__init__(5001, f"Position not found: {position_id}", 404)


class PositionNotActiveError(AppError):
    def __init__(self, position_id: str, status: str) -> None:
        super().__init__(5002, f"Position {position_id} is not active (status={status})", 422)


class InvalidPrincipalError(DataIntegrityError):
    def __init__(self, position_id: str, principal: int) -> None:
        super().__init__(
            5003, f"Position {position_id} has non-positive principal {principal}", 422
        )


class PositionKindMismatchError(DataIntegrityError):
    def __init__(self, position_id: str, position_kind: str, plan_kind: str) -> None:
        super().__init__(
            5004,
            f"Position {position_id} kind {position_kind} does not match plan kind {plan_kind}",
            422,
        )


# --- 6xxx: Distribution ---

class DistributionIncompleteError(AppError):
    def __init__(self, position_id: str, recorded: int, duration: int) -> None:
        super().__init__(
            6001,
            f"Position {position_id} cannot complete: {recorded}/{duration} periods recorded",
            409,
        )


# --- 9xxx: System ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class SnapshotStoreUnavailableError(AppError):
    def __init__(self) -> None:
        super().__init__(9003, "Last-run snapshot store unavailable", 503)
