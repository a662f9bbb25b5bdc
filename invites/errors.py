class InviteCodeError(Exception):
    """Base class for invite code failures.

    ``title`` and ``blurb`` are the short, user-facing texts shown by the UI.
    """

    title = "Invite Code Error"
    blurb = ""

    def __str__(self) -> str:
        return self.title


class GenerationError(InviteCodeError):
    def __init__(self, cause: Exception):
        super().__init__(cause)
        self.cause = cause

    @property
    def title(self) -> str:
        return str(self.cause)

    @property
    def blurb(self) -> str:
        return str(self.cause)


class ExhaustedRetries(InviteCodeError):
    title = "Could Not Generate Invite Codes"
    blurb = "Please try again in a moment"

    def __init__(self, attempts: int):
        super().__init__(attempts)
        self.attempts = attempts

    def __str__(self) -> str:
        return f"No collision-free batch after {self.attempts} attempts"


class InvalidCode(InviteCodeError):
    title = "Invite Code Invalid"
    blurb = "Did you type it correctly?"

    NOT_FOUND = "not_found"
    FETCH_FAILED = "fetch_failed"

    def __init__(self, code: str, reason: str = NOT_FOUND):
        super().__init__(code, reason)
        self.code = code
        self.reason = reason


class AlreadyUsed(InviteCodeError):
    title = "Invite Code Already Used"
    blurb = "Ask a friend for another code"

    def __init__(self, code: str):
        super().__init__(code)
        self.code = code


class RedemptionError(InviteCodeError):
    title = "Error Using Invite Code"
    blurb = "Try again, or contact support if this keeps happening"

    # CONFLICT means the conditional save was rejected. Usually another client
    # redeemed first, but botocore's retry mode can also resend a save that
    # already went through, so the caller may in fact be the one who won.
    CONFLICT = "conflict"
    STORE_ERROR = "store_error"

    def __init__(self, code: str, reason: str = STORE_ERROR):
        super().__init__(code, reason)
        self.code = code
        self.reason = reason


class OperationInProgress(InviteCodeError):
    title = "Already Loading Invite Codes"
    blurb = "Wait for the current request to finish"
