"""Resource identifiers: a path name inside a namespace."""

from dataclasses import dataclass

from ..constants import PATH_DELIMITER


@dataclass(frozen=True, order=True)
class ResourceId:
    """A resource path name scoped to a namespace (bucket).

    Attributes:
        namespace: Namespace the resource belongs to.
        name: `/`-delimited path inside the namespace. A trailing `/`
            denotes a directory.
    """

    namespace: str
    name: str

    def __post_init__(self) -> None:
        if not self.namespace:
            raise ValueError("namespace should not be empty")
        if PATH_DELIMITER in self.namespace:
            raise ValueError(f"namespace should not contain '{PATH_DELIMITER}': {self.namespace}")
        if self.namespace in (".", ".."):
            raise ValueError(f"namespace should not be a relative path: {self.namespace}")
        if not self.name:
            raise ValueError(f"resource name should not be empty in namespace {self.namespace}")

    @classmethod
    def parse(cls, value: str) -> "ResourceId":
        """Parse `namespace/name` or `scheme://namespace/name`.

        Raises:
            ValueError: If the namespace or name part is missing
        """
        _, sep, rest = value.partition("://")
        if not sep:
            rest = value
        namespace, _, name = rest.partition(PATH_DELIMITER)
        return cls(namespace=namespace, name=name)

    @property
    def is_directory(self) -> bool:
        return self.name.endswith(PATH_DELIMITER)

    def __str__(self) -> str:
        return f"{self.namespace}{PATH_DELIMITER}{self.name}"
