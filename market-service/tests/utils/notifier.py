from typing import Any, List, Optional, Tuple


class FakeNotifier:
    """Records emitted events instead of publishing them."""

    def __init__(self):
        self.events: List[Tuple[str, Any, Optional[str]]] = []

    def emit(self, event_type: str, entity: Any, actor_id: Optional[str] = None) -> None:
        self.events.append((event_type, entity, actor_id))

    @property
    def types(self) -> List[str]:
        return [event_type for event_type, _, _ in self.events]
