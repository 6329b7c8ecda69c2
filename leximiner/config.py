import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from .analyzers.dictionary import Dictionary
from .analyzers.scorer import CompositeScore, Denominator
from .analyzers.tokenizer import TokenizerConfig
from .exceptions import ConfigurationError
from .utils.yaml_utils import PatternLoader, load_yaml

logger = logging.getLogger(__name__)

_FDATA = Path(__file__).parent / "fdata"
_BUILTIN = "builtin:"

_KNOWN_KEYS = {
    "dictionary",
    "compounds",
    "stopwords",
    "extra_stopwords",
    "tokenizer",
    "denominator",
    "composites",
    "group_by",
    "workers",
    "executor",
    "corpus",
}


@dataclass
class CorpusConfig:
    path: Optional[Path] = None
    format: Optional[str] = None
    text_field: str = "text"
    id_field: Optional[str] = None


@dataclass
class AnalysisConfig:
    """
    One analysis run, usually loaded from YAML:

        dictionary: dictionaries/lsd.yaml      # or builtin:sentiment, or a mapping
        compounds: builtin:negations           # list, path, or "dictionary"
        stopwords: english                     # language, list, or false
        tokenizer: {remove_numbers: true}
        denominator: terms                     # matched | terms | tokens
        composites:
          tone: {positive: 1, negative: -1}
        group_by: [year]
        corpus: {path: speeches.csv, text_field: text, id_field: id}

    Relative paths resolve against the config file's directory.
    """

    dictionary: Union[str, Mapping[str, Any]] = "builtin:sentiment"
    compounds: Union[str, List[Any], None] = None
    stopwords: Union[str, List[str], bool, None] = "english"
    extra_stopwords: List[str] = field(default_factory=list)
    tokenizer: TokenizerConfig = field(default_factory=TokenizerConfig)
    denominator: Denominator = Denominator.TERMS
    composites: Dict[str, Any] = field(default_factory=dict)
    group_by: Optional[List[str]] = None
    workers: Optional[int] = None
    executor: str = "thread"
    corpus: CorpusConfig = field(default_factory=CorpusConfig)
    base_dir: Path = field(default_factory=Path.cwd)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], base_dir: Optional[Path] = None) -> "AnalysisConfig":
        if not isinstance(data, Mapping):
            raise ConfigurationError("Analysis config must be a mapping")
        unknown = set(data) - _KNOWN_KEYS
        if unknown:
            raise ConfigurationError(f"Unknown config key(s): {', '.join(sorted(unknown))}")

        group_by = data.get("group_by")
        if isinstance(group_by, str):
            group_by = [group_by]
        if group_by is not None and not all(isinstance(k, str) for k in group_by):
            raise ConfigurationError("group_by must be a key or a list of keys")

        workers = data.get("workers")
        if workers is not None and (not isinstance(workers, int) or workers < 1):
            raise ConfigurationError("workers must be a positive integer")

        composites = data.get("composites") or {}
        if not isinstance(composites, Mapping):
            raise ConfigurationError("composites must be a mapping of name -> weights")

        corpus = data.get("corpus") or {}
        if not isinstance(corpus, Mapping):
            raise ConfigurationError("corpus must be a mapping")
        base_dir = Path(base_dir) if base_dir else Path.cwd()
        corpus_path = corpus.get("path")

        return cls(
            dictionary=data.get("dictionary", "builtin:sentiment"),
            compounds=data.get("compounds"),
            stopwords=data.get("stopwords", "english"),
            extra_stopwords=list(data.get("extra_stopwords") or []),
            tokenizer=TokenizerConfig.from_dict(data.get("tokenizer")),
            denominator=Denominator.parse(data.get("denominator", "terms")),
            composites=dict(composites),
            group_by=list(group_by) if group_by else None,
            workers=workers,
            executor=data.get("executor", "thread"),
            corpus=CorpusConfig(
                path=base_dir / corpus_path if corpus_path else None,
                format=corpus.get("format"),
                text_field=corpus.get("text_field", "text"),
                id_field=corpus.get("id_field"),
            ),
            base_dir=base_dir,
        )

    def _resolve(self, value: str) -> Path:
        if value.startswith(_BUILTIN):
            return _FDATA / f"{value[len(_BUILTIN):]}.yaml"
        return self.base_dir / value

    def load_dictionary(self) -> Dictionary:
        if isinstance(self.dictionary, Mapping):
            return Dictionary.from_dict(self.dictionary)
        if isinstance(self.dictionary, str):
            return Dictionary.load(self._resolve(self.dictionary))
        raise ConfigurationError("dictionary must be a path, builtin:<name>, or a mapping")

    def load_compounds(self) -> Union[str, List[Any]]:
        """Resolve the compounds setting to a rule list (or "dictionary")."""
        value = self.compounds
        if value is None:
            return []
        if value == "dictionary":
            return "dictionary"
        if isinstance(value, str):
            path = self._resolve(value)
            if not path.exists():
                raise ConfigurationError(f"Compound rule file not found: {path}")
            value = load_yaml(path, loader=PatternLoader)
        if not isinstance(value, list):
            raise ConfigurationError("compounds must be a list of phrases")
        return value

    def build_composites(self) -> List[CompositeScore]:
        return [CompositeScore.from_config(name, spec) for name, spec in self.composites.items()]


def load_config(path: Union[str, Path]) -> AnalysisConfig:
    """Load an AnalysisConfig from a YAML file."""
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Config file not found: {path}")
    data = load_yaml(path) or {}
    logger.debug(f"Loaded config {path}")
    return AnalysisConfig.from_dict(data, base_dir=path.parent)
