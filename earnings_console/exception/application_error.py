class ApplicationError(Exception):
    status_code = 200
    error_code = "A0000"

    def __init__(self, payload=None, error_code=None, status_code=None):
        super().__init__()
        self.payload = payload or {}
        if error_code is not None:
            self.error_code = error_code
        if status_code is not None:
            self.status_code = status_code

    def __str__(self):
        return f"{self.error_code}: {self.payload.get('message', '')}"

    def to_dict(self):
        return {**self.payload, "error_code": self.error_code}
