from santa.services.assignment import (
    AssignmentError,
    GenerationFailed,
    InsufficientParticipants,
    Participant,
    generate_assignment,
)
from santa.services.draw_flow import DrawError

__all__ = [
    "AssignmentError",
    "GenerationFailed",
    "InsufficientParticipants",
    "Participant",
    "generate_assignment",
    "DrawError",
]
