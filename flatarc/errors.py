class FlatArcError(Exception):
    """Base class for flatarc-specific errors."""


# Container level
class ArchiveOpenFailed(FlatArcError):
    pass


class ArchiveAbsent(ArchiveOpenFailed):
    pass


class CorruptRecord(FlatArcError):
    pass


class InvalidRecordName(FlatArcError):
    pass


# Per-file
class SourceFileUnreadable(FlatArcError):
    pass


class TargetFileUncreatable(FlatArcError):
    pass
