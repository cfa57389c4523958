from typing import Self

from attrs import define, field
import toml

MANIFEST_EXTENSION = "toml"


@define(frozen=True, slots=True)
class GitSource:
    url: str
    branch: str | None = None


@define(frozen=True, slots=True)
class ArchiveSource:
    url: str


Source = GitSource | ArchiveSource


def _to_tuple(value: list[str] | tuple[str, ...]) -> tuple[str, ...]:
    return tuple(value)


@define(frozen=True, slots=True)
class PackageMeta:
    name: str
    version: str
    target: str
    depends: tuple[str, ...] = field(default=(), converter=_to_tuple)

    def __attrs_post_init__(self) -> None:
        if not self.name:
            raise ValueError("Package name must not be empty.")
        if not self.version.strip():
            raise ValueError("Package version must not be empty.")

    @property
    def manifest_name(self) -> str:
        return f"{self.name}.{MANIFEST_EXTENSION}"

    def to_toml(self) -> str:
        return toml.dumps(
            {
                "name": self.name,
                "version": self.version,
                "target": self.target,
                "depends": list(self.depends),
            }
        )

    @classmethod
    def from_toml(cls, text: str) -> Self:
        data = toml.loads(text)
        try:
            return cls(
                name=data["name"],
                version=data["version"],
                target=data["target"],
                depends=data.get("depends", []),
            )
        except KeyError as e:
            raise ValueError(f"Manifest is missing field {e}") from e
