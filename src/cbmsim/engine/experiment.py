"""
Experiment description: an ordered list of trials.

An experiment is either given as an explicit trial list or expanded from a
session description, the structure used by experiment files::

    {
        "trial_defs": {
            "CS_US":   {"use_cs": true,  "cs_onset": 2000, "cs_offset": 4000,
                        "cs_percent": 100, "use_us": true, "us_onset": 3990},
            "CS_only": {"use_cs": true,  "cs_onset": 2000, "cs_offset": 4000,
                        "cs_percent": 100, "use_us": false, "us_onset": 0}
        },
        "blocks": {
            "acquisition": [["CS_US", 9], ["CS_only", 1]]
        },
        "session": [["acquisition", 10]]
    }

Session entries name a block (expanded in order) or a single trial
definition, each repeated the given number of times. Parsing of the
original text formats is not handled here; descriptions arrive as
dictionaries or JSON.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Sequence, Tuple, Union

from cbmsim.errors import ConfigurationError


@dataclass(frozen=True)
class Trial:
    """One behavioral trial. Read-only once an experiment is loaded."""

    name: str
    use_cs: bool = True
    cs_onset: int = 2000
    cs_offset: int = 4000
    cs_percent: float = 100.0
    """Percentage of CS mossy fibers engaged; carried for the stimulus generators."""
    use_us: bool = False
    us_onset: int = 0

    def __post_init__(self) -> None:
        if self.cs_onset < 0 or self.cs_offset < self.cs_onset:
            raise ConfigurationError(
                f"Trial {self.name!r}: invalid CS window [{self.cs_onset}, {self.cs_offset})"
            )
        if not 0.0 <= self.cs_percent <= 100.0:
            raise ConfigurationError(
                f"Trial {self.name!r}: cs_percent={self.cs_percent} outside [0, 100]"
            )
        if self.us_onset < 0:
            raise ConfigurationError(f"Trial {self.name!r}: us_onset={self.us_onset} is negative")

    @property
    def cs_length(self) -> int:
        return self.cs_offset - self.cs_onset

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Experiment:
    """Ordered, immutable sequence of trials."""

    trials: Tuple[Trial, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "trials", tuple(self.trials))

    def __len__(self) -> int:
        return len(self.trials)

    def __iter__(self) -> Iterator[Trial]:
        return iter(self.trials)

    def __getitem__(self, index: int) -> Trial:
        return self.trials[index]

    @property
    def num_trials(self) -> int:
        return len(self.trials)

    @classmethod
    def from_session(
        cls,
        trial_defs: Mapping[str, Mapping[str, Any]],
        blocks: Mapping[str, Sequence[Sequence[Any]]],
        session: Sequence[Sequence[Any]],
    ) -> "Experiment":
        """Expand trial definitions, blocks and a session into a trial list."""
        templates = {name: Trial(name=name, **params) for name, params in trial_defs.items()}

        def expand_block(block_name: str) -> List[Trial]:
            expanded = []
            for trial_name, count in blocks[block_name]:
                if trial_name not in templates:
                    raise ConfigurationError(
                        f"Block {block_name!r} references unknown trial {trial_name!r}"
                    )
                expanded.extend([templates[trial_name]] * int(count))
            return expanded

        trials: List[Trial] = []
        for identifier, count in session:
            if identifier in blocks:
                unit = expand_block(identifier)
            elif identifier in templates:
                unit = [templates[identifier]]
            else:
                raise ConfigurationError(
                    f"Session entry {identifier!r} is neither a block nor a trial"
                )
            for _ in range(int(count)):
                trials.extend(unit)
        return cls(tuple(trials))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Experiment":
        """Build from ``{"trials": [...]}`` or a session description."""
        if "trials" in data:
            return cls(tuple(Trial(**t) for t in data["trials"]))
        missing = [k for k in ("trial_defs", "blocks", "session") if k not in data]
        if missing:
            raise ConfigurationError(f"Experiment description is missing {missing}")
        return cls.from_session(data["trial_defs"], data["blocks"], data["session"])

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "Experiment":
        path = Path(path)
        try:
            data = json.loads(path.read_text())
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e
        return cls.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        return {"trials": [t.to_dict() for t in self.trials]}
