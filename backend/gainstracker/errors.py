"""
Errors raised by the active-session draft manager and its collaborators.

Routers translate these into HTTP responses; none of them is fatal.
"""


class DraftError(Exception):
    """Base class for everything the draft layer raises."""


class NotFound(DraftError):
    def __init__(self, instance_id: int):
        super().__init__(f"exercise entry {instance_id} not found")
        self.instance_id = instance_id


class IndexOutOfRange(DraftError):
    def __init__(self, instance_id: int, set_index: int):
        super().__init__(f"set {set_index} out of range for exercise entry {instance_id}")
        self.instance_id = instance_id
        self.set_index = set_index


class InvalidSetField(DraftError):
    def __init__(self, field: str, detail: str = "unknown field"):
        super().__init__(f"{field}: {detail}")
        self.field = field


class InvalidSetValue(DraftError):
    """A strength set holds text that can't be parsed as a number."""

    def __init__(self, exercise: str, set_index: int, field: str, value: str):
        super().__init__(f"{exercise} set {set_index + 1}: {field} {value!r} is not a valid number")
        self.exercise = exercise
        self.set_index = set_index
        self.field = field
        self.value = value


class PersistenceUnavailable(DraftError):
    """The durable key-value store could not be read or written."""


class SubmissionFailed(DraftError):
    """The finished workout was rejected or the store was unreachable."""


class EmptyDraft(DraftError):
    def __init__(self):
        super().__init__("add at least one exercise before finishing")
