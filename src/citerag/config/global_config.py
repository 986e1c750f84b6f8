"""citerag.config.global_config

Global configuration loader and accessors.

This module defines a lightweight wrapper around a raw YAML configuration
dictionary, providing validated, cached access to the configuration sections
used across the retrieval engine.

Environment variables of the form ``${VAR}`` are expanded recursively in all
string values at load time.

Classes
-------
GlobalConfig
    Loader and accessor for global project configuration.
"""

import os
import yaml
from pathlib import Path
from functools import cached_property

from citerag.common.schemas import DEFAULT_TOP_K, MAX_TOP_K, MIN_TOP_K

DOC_BASE_URL_ENV = "DOC_BASE_URL"
LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


def _expand_env(obj):
    """Recursively expand environment variables in a nested structure.

    This function walks nested dictionaries and lists and applies
    :func:`os.path.expandvars` to any string values, expanding patterns of the
    form ``${VAR}`` using the current process environment.

    Parameters
    ----------
    obj : Any
        Object to expand. Supported types are dictionaries, lists, and strings.
        Other types are returned unchanged.

    Returns
    -------
    Any
        A structure of the same shape as ``obj`` with environment variables
        expanded in all string values.
    """
    if isinstance(obj, dict):
        return {k: _expand_env(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_expand_env(v) for v in obj]
    if isinstance(obj, str):
        return os.path.expandvars(obj)
    return obj


def _section(raw: dict, name: str, required: bool = False) -> dict:
    section = raw.get(name)
    if section is None:
        if required:
            raise KeyError(f"Missing '{name}' section in configuration.")
        return {}
    if not isinstance(section, dict):
        raise TypeError(f"'{name}' must be a mapping, got {type(section).__name__}.")
    return section


def _positive_int(section: dict, key: str, default: int, where: str) -> int:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"'{where}.{key}' must be an integer, got {value!r}.")
    if value < 1:
        raise ValueError(f"'{where}.{key}' must be >= 1, got {value}.")
    return value


class GlobalConfig:
    """Loader and accessor for global project configuration.

    This class wraps a raw configuration dictionary (typically loaded from YAML)
    and exposes validated, cached accessors for the configuration sections.

    Parameters
    ----------
    raw : dict
        Raw configuration data as loaded from a YAML file.
    config_path : Path or None, optional
        Absolute path of the loaded file. Relative paths in the configuration
        are resolved against its directory.
    """

    def __init__(
            self,
            raw: dict,
            config_path: Path | None = None,
        ):
        if not isinstance(raw, dict):
            raise TypeError(f"Configuration root must be a mapping, got {type(raw).__name__}.")
        self.raw = raw
        self.config_path = config_path

    @classmethod
    def load(
            cls,
            path: str | Path,
        ) -> "GlobalConfig":
        """Load configuration from a YAML file.

        Parameters
        ----------
        path : str or Path
            Path to the YAML configuration file.

        Returns
        -------
        GlobalConfig
            An instance initialised with the loaded and environment-expanded data.

        Notes
        -----
        All string values in the loaded YAML are processed with recursive
        environment-variable expansion (``${VAR}``) via :func:`os.path.expandvars`.
        """
        cfg_path = Path(path).expanduser().resolve()
        with cfg_path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        data = _expand_env(data or {})
        return cls(data, config_path=cfg_path)

    @cached_property
    def base_dir(self) -> Path:
        """Directory relative paths are resolved against.

        The loaded file's directory, or the current working directory when the
        configuration was built in memory.
        """
        if self.config_path is not None:
            return Path(self.config_path).parent
        return Path.cwd()

    def resolve_path(self, value: str | Path) -> Path:
        """Resolve ``value`` against :attr:`base_dir` unless it is absolute."""
        p = Path(str(value)).expanduser()
        if not p.is_absolute():
            p = self.base_dir / p
        return p.resolve()

    @cached_property
    def embedder(self) -> dict:
        """Return the embedder configuration section.

        Returns
        -------
        dict
            The ``embedder`` section of the configuration.

        Raises
        ------
        KeyError
            If the section or its ``model_name`` is missing.
        TypeError
            If the section is not a mapping.
        """
        section = _section(self.raw, "embedder", required=True)
        if not section.get("model_name"):
            raise KeyError("Missing 'embedder.model_name' in configuration.")
        return section

    @cached_property
    def index_path(self) -> Path:
        """Return the resolved location of the persisted index file.

        Raises
        ------
        KeyError
            If ``index.path`` is missing.
        """
        section = _section(self.raw, "index", required=True)
        path = section.get("path")
        if not path:
            raise KeyError("Missing 'index.path' in configuration.")
        return self.resolve_path(path)

    @cached_property
    def chunking(self) -> dict:
        """Return the chunking configuration section.

        Returns
        -------
        dict
            The ``chunking`` section, or an empty dict if not present. Values
            are validated by :class:`~citerag.retrieval.text_splitter.MarkdownHeadingSplitter`.
        """
        return _section(self.raw, "chunking")

    @cached_property
    def indexing(self) -> dict:
        """Return the indexing configuration section.

        Returns
        -------
        dict
            Mapping with ``docs_dir`` (resolved :class:`Path` or ``None``),
            ``batch_size`` and ``max_concurrency``.

        Raises
        ------
        TypeError
            If a count is not an integer.
        ValueError
            If a count is smaller than one.
        """
        section = _section(self.raw, "indexing")
        docs_dir = section.get("docs_dir")
        return {
            "docs_dir": self.resolve_path(docs_dir) if docs_dir else None,
            "batch_size": _positive_int(section, "batch_size", 64, "indexing"),
            "max_concurrency": _positive_int(section, "max_concurrency", 1, "indexing"),
        }

    @cached_property
    def ranking(self) -> dict:
        """Return the ranking configuration section.

        Returns
        -------
        dict
            The ``ranking`` section, or an empty dict (packaged default policy).
        """
        return _section(self.raw, "ranking")

    @cached_property
    def service(self) -> dict:
        """Return the retrieval service configuration section.

        ``doc_base_url`` falls back to the ``DOC_BASE_URL`` environment
        variable and always ends with ``/`` when non-empty.

        Returns
        -------
        dict
            Mapping with ``doc_base_url`` and ``default_top_k``.

        Raises
        ------
        ValueError
            If ``default_top_k`` is outside ``[1, 20]``.
        """
        section = _section(self.raw, "service")

        base_url = section.get("doc_base_url") or os.environ.get(DOC_BASE_URL_ENV, "")
        base_url = str(base_url)
        if base_url.startswith("$"):
            # unexpanded ${VAR}
            base_url = ""
        if base_url and not base_url.endswith("/"):
            base_url += "/"

        top_k = _positive_int(section, "default_top_k", DEFAULT_TOP_K, "service")
        if not MIN_TOP_K <= top_k <= MAX_TOP_K:
            raise ValueError(
                f"'service.default_top_k' must be within [{MIN_TOP_K}, {MAX_TOP_K}], got {top_k}."
            )

        return {"doc_base_url": base_url, "default_top_k": top_k}

    @cached_property
    def log_level(self) -> str:
        """Return the configured log level name (default ``INFO``).

        Raises
        ------
        ValueError
            If the level is not a standard :mod:`logging` level name.
        """
        level = str(_section(self.raw, "logging").get("level", "INFO")).upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown 'logging.level' {level!r}.")
        return level
