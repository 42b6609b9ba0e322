from typing import List, Optional


# ===========================
# Base Error
# ===========================
class VelaError(Exception):
    code = "VELA_ERROR"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


# ===========================
# Identifier Errors
# ===========================
class IdentifierConversionFailed(VelaError):
    code = "IDENTIFIER_CONVERSION_FAILED"


# ===========================
# Per-Candidate Errors
# ===========================
class CandidateError(VelaError):
    """Failure of a single candidate. Recorded on the attempt, never raised to callers."""

    code = "CANDIDATE_ERROR"

    def __init__(self, info_hash: str, message: Optional[str] = None):
        super().__init__(message)
        self.info_hash = info_hash


class CandidateNotCached(CandidateError):
    code = "CANDIDATE_NOT_CACHED"


class FileInspectionFailed(CandidateError):
    code = "FILE_INSPECTION_FAILED"


class NoVideoFile(FileInspectionFailed):
    code = "NO_VIDEO_FILE"


class DirectLinkFailed(CandidateError):
    code = "DIRECT_LINK_FAILED"


class TranscodeFailed(CandidateError):
    code = "TRANSCODE_FAILED"


class CandidateAttemptFailed(CandidateError):
    code = "CANDIDATE_ATTEMPT_FAILED"


# ===========================
# Terminal Resolution Errors
# ===========================
class NoStreamsFound(VelaError):
    code = "NO_STREAMS_FOUND"


class NoCandidatesFound(NoStreamsFound):
    code = "NO_CANDIDATES_FOUND"


class AllCandidatesExhausted(NoStreamsFound):
    code = "ALL_CANDIDATES_EXHAUSTED"

    def __init__(self, message: Optional[str] = None, errors: Optional[List[CandidateError]] = None):
        super().__init__(message)
        self.errors = errors or []


class NoCandidateCached(AllCandidatesExhausted):
    code = "NO_CANDIDATE_CACHED"


class DebridAuthenticationFailed(VelaError):
    code = "DEBRID_AUTHENTICATION_FAILED"


class ResolutionCancelled(VelaError):
    code = "RESOLUTION_CANCELLED"


# ===========================
# Session Errors
# ===========================
class SessionNotFound(VelaError):
    code = "SESSION_NOT_FOUND"


class SessionExpired(SessionNotFound):
    code = "SESSION_EXPIRED"
