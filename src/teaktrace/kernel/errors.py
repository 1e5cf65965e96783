"""Fatal consistency errors.

Every error here means the SDK under test (or the log capture) broke an
invariant. They are raised where the invariant is checked and are never
caught inside the engine.
"""

from typing import Optional


class ConsistencyError(ValueError):
    """Raised when a log line violates a modeled invariant."""

    def __init__(self, message: str, line: Optional[str] = None):
        super().__init__(message)
        self.line = line


class DecodeError(ConsistencyError):
    """Raised when a recognized payload shape carries malformed JSON or misses fields."""

    def __init__(self, type_name: str, instance_id: str, reason: str):
        super().__init__(f"Could not decode {type_name}@{instance_id}: {reason}")
        self.type_name = type_name
        self.instance_id = instance_id


class InstanceRecreatedError(ConsistencyError):
    """Raised when an event addresses a different SDK instance than the active one."""

    def __init__(self, expected_id: Optional[str], found_id: str):
        super().__init__(f"Teak got re-created {expected_id} -> {found_id}")
        self.expected_id = expected_id
        self.found_id = found_id


class StateSequenceError(ConsistencyError):
    """Raised when a transition's previous state is not the current state."""

    def __init__(self, owner: str, current_state: str, previous_state: Optional[str], state: str):
        super().__init__(
            f"State transition consistency failed for {owner}, current state is "
            f"'{current_state}', expected '{previous_state}' (transition to '{state}')"
        )
        self.owner = owner
        self.current_state = current_state
        self.previous_state = previous_state
        self.state = state


class RegistrationError(ConsistencyError):
    """Raised for duplicate, unknown or re-assigned configuration registrations."""

    def __init__(self, message: str, registry: str, key: Optional[str]):
        super().__init__(f"{message}: {registry} '{key}'")
        self.registry = registry
        self.key = key


class UnknownSessionError(ConsistencyError):
    """Raised when an event addresses a session that is missing or not current."""

    def __init__(self, message: str, session_id: Optional[str]):
        super().__init__(f"{message} (session '{session_id}')")
        self.session_id = session_id


class DuplicateSessionError(ConsistencyError):
    """Raised when a session id reappears after being superseded."""

    def __init__(self, session_id: str):
        super().__init__(f"Duplicate session created: '{session_id}'")
        self.session_id = session_id


class RequestError(ConsistencyError):
    """Raised for duplicate requests and replies to missing or already-replied requests."""

    def __init__(self, message: str, session_id: str, request_id: str):
        super().__init__(f"{message}: request '{request_id}' in session '{session_id}'")
        self.session_id = session_id
        self.request_id = request_id


class AttributionError(ConsistencyError):
    """Raised when a registration request breaks the do-not-track rule."""

    def __init__(self, message: str, session_id: str, request_id: str):
        super().__init__(f"{message}: request '{request_id}' in session '{session_id}'")
        self.session_id = session_id
        self.request_id = request_id
