class ApiError(Exception):
    """
    The service answered, but not with a success envelope.

    ``status_code`` is the HTTP status; ``payload`` is the decoded body when
    the server sent JSON.
    """

    def __init__(self, status_code, message, payload=None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.payload = payload or {}

    @property
    def is_unauthenticated(self):
        return self.status_code == 401

    def __str__(self):
        return f"{self.status_code}: {self.message}"
