"""
Domain error taxonomy.

Geometry failures describe a polygon the user is still expected to fix;
they are raised only from commands that require a valid shape
(finalize, remove). The live validity flag never raises.
"""


class GeofenceError(Exception):
    """Base class for all domain errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InsufficientVertices(GeofenceError):
    """Finalize attempted with fewer than 3 vertices."""

    def __init__(self, vertex_count: int):
        super().__init__(
            f"A territory needs at least 3 points, got {vertex_count}"
        )
        self.vertex_count = vertex_count


class SelfIntersecting(GeofenceError):
    """Finalize attempted on a polygon whose edges cross."""

    def __init__(self):
        super().__init__("Territory lines are crossing; fix the shape before saving")


class TooFewVertices(GeofenceError):
    """Removing a vertex would leave fewer than 3."""

    def __init__(self, vertex_count: int):
        super().__init__(
            f"Cannot remove a point from a {vertex_count}-point territory "
            f"(minimum is 3)"
        )
        self.vertex_count = vertex_count


class VertexIndexError(GeofenceError):
    """Vertex index outside the current sequence."""

    def __init__(self, index: int, vertex_count: int):
        super().__init__(
            f"Vertex index {index} out of range for {vertex_count} points"
        )
        self.index = index
        self.vertex_count = vertex_count


class InvalidSessionState(GeofenceError):
    """Operation not allowed in the session's current mode."""

    def __init__(self, operation: str, mode: str):
        super().__init__(f"Cannot {operation} while session is {mode}")
        self.operation = operation
        self.mode = mode


class NotFound(GeofenceError):
    """Unknown territory or session id."""

    def __init__(self, kind: str, identifier: str):
        super().__init__(f"{kind} '{identifier}' not found")
        self.kind = kind
        self.identifier = identifier


class DuplicateTerritory(GeofenceError):
    """A territory with the same id already exists."""

    def __init__(self, territory_id: str):
        super().__init__(f"Territory '{territory_id}' already exists")
        self.territory_id = territory_id
