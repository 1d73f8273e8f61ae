from dataclasses import dataclass, asdict


@dataclass(frozen=True)
class Image:
    """The image a service runs, as found on its task definition."""

    image_name: str
    task_definition_name: str
    service_name: str

    def as_dict(self):
        return asdict(self)
