"""Import pipeline error taxonomy.

Row- and file-level errors never unwind past the file being processed;
only ConnectionFailure aborts a whole run.
"""


class ImportPipelineError(Exception):
    """Base class for import pipeline errors."""


class ConfigNotFound(ImportPipelineError):
    """No registry entry matches the file. The file is skipped."""

    def __init__(self, file_name: str, program: str, level: str):
        self.file_name = file_name
        self.program = program
        self.level = level
        super().__init__(f"No layout registered for {program}/{level} file '{file_name}'")


class RowSkipped(ImportPipelineError):
    """A row failed normalization or validation."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class EntityResolutionFailure(RowSkipped):
    """A natural key needed to resolve an entity (e.g. AUN) is absent."""


class StoreWriteFailure(ImportPipelineError):
    """Persistence failed. Fatal to the current file only."""


class ConnectionFailure(ImportPipelineError):
    """The store is unreachable. Fatal to the entire run."""
