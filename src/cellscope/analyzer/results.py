"""Result records produced by the scope explorer."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Set


class DefinitionKind(str, Enum):
    """What kind of construct introduced a global definition."""
    ASSIGNMENT = 'assignment'
    FUNCTION = 'function'
    MACRO = 'macro'
    STRUCT = 'struct'
    ABSTRACT = 'abstract'
    PRIMITIVE = 'primitive'
    MODULE = 'module'
    IMPORT = 'import'


@dataclass(frozen=True)
class Occurrence:
    """One textual appearance of an identifier."""
    name: str
    start: int  # byte offset, inclusive
    end: int  # byte offset, exclusive

    def to_dict(self) -> dict:
        return {'name': self.name, 'start': self.start, 'end': self.end}


@dataclass(frozen=True)
class Definition:
    """A global binding, visible to other cells."""
    name: str
    start: int
    end: int
    kind: DefinitionKind = DefinitionKind.ASSIGNMENT

    def to_dict(self) -> dict:
        return {
            'name': self.name,
            'start': self.start,
            'end': self.end,
            'kind': self.kind.value,
        }


@dataclass
class AnalysisResult:
    """Everything the explorer learned about one cell.

    `definitions` is keyed by name: a later global definition of the same
    name replaces the earlier metadata but keeps its position in the
    mapping. `free_usages` holds the reads that no active local frame
    covered, i.e. the names this cell may depend on.
    """
    locals: List[Occurrence] = field(default_factory=list)
    usages: List[Occurrence] = field(default_factory=list)
    definitions: Dict[str, Definition] = field(default_factory=dict)
    free_usages: List[Occurrence] = field(default_factory=list)

    def local_names(self) -> Set[str]:
        return {occurrence.name for occurrence in self.locals}

    def usage_names(self) -> Set[str]:
        return {occurrence.name for occurrence in self.usages}

    def free_names(self) -> Set[str]:
        return {occurrence.name for occurrence in self.free_usages}

    def definition_names(self) -> Set[str]:
        return set(self.definitions)

    def merge(self, other: 'AnalysisResult') -> 'AnalysisResult':
        """Append another result's occurrences to this one.

        Definitions from `other` win on name clashes (last write wins).

        Returns:
            self, to allow chaining
        """
        self.locals.extend(other.locals)
        self.usages.extend(other.usages)
        self.free_usages.extend(other.free_usages)
        self.definitions.update(other.definitions)
        return self

    def to_dict(self) -> dict:
        """JSON-ready representation."""
        return {
            'locals': [o.to_dict() for o in self.locals],
            'usages': [o.to_dict() for o in self.usages],
            'definitions': {name: d.to_dict() for name, d in self.definitions.items()},
            'free_usages': [o.to_dict() for o in self.free_usages],
        }
