class ChartixError(Exception):
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# ---------------------------------------------------------
# File ingestion
# ---------------------------------------------------------
PARSE_ERROR = "PARSE_ERROR"
INVALID_FORMAT = "INVALID_FORMAT"
EMPTY_FILE = "EMPTY_FILE"
TOO_LARGE = "TOO_LARGE"


class FileParseError(ChartixError):
    """
    Raised when an uploaded file cannot be turned into rows.
    `type` is one of PARSE_ERROR, INVALID_FORMAT, EMPTY_FILE, TOO_LARGE.
    """

    def __init__(self, type: str, message: str, details: str = None):
        super().__init__(message)
        self.type = type
        self.details = details

    def to_dict(self):
        error = {"type": self.type, "message": self.message}
        if self.details:
            error["details"] = self.details
        return error


# ---------------------------------------------------------
# Project persistence
# ---------------------------------------------------------
class ProjectStoreError(ChartixError):
    pass


class ProjectNotFoundError(ProjectStoreError):
    def __init__(self, project_id: str):
        super().__init__(f"Project '{project_id}' does not exist")
        self.project_id = project_id
