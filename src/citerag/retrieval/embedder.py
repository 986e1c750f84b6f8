"""citerag.retrieval.embedder

Embedding interfaces and factories for the retrieval layer.

This module defines a small provider-agnostic interface for producing vector
embeddings from text, along with concrete implementations backed by
LlamaIndex embedding wrappers. A factory function is provided to construct
an embedder implementation from configuration.

Every embedder is bound to one model identifier. Asking it to embed for a
different model raises :class:`~citerag.common.errors.EmbeddingModelMismatchError`
so vectors from different models never meet in one similarity computation.

Classes
-------
BaseEmbedder
    Abstract interface specifying the API used by the retrieval pipeline.
HuggingFaceEmbedder
    Embedder backed by a Hugging Face SentenceTransformer via LlamaIndex.
OpenAILikeEmbedder
    Embedder backed by an OpenAI-compatible HTTP API via LlamaIndex.
MockEmbedder
    Offline embedder returning constant vectors, for smoke runs.

Functions
---------
create_embedder
    Create an embedder implementation from a configuration mapping.
"""

from abc import ABC, abstractmethod
from llama_index.core.base.embeddings.base import BaseEmbedding as LlamaIndexBaseEmbedding
from typing import Any, Dict, Mapping, Optional, Sequence
import asyncio
import yaml

from citerag.common.errors import EmbeddingModelMismatchError


class EmbeddingError(RuntimeError):
    """The embedding provider returned an unusable response."""


def _as_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"1", "true", "yes", "y", "on"}:
            return True
        if normalized in {"0", "false", "no", "n", "off"}:
            return False
    return bool(value)


class BaseEmbedder(ABC):
    """Abstract interface for text embedding.

    Concrete implementations wrap a provider-specific embedder and expose a
    small, consistent API used by the indexing pipeline and the retrieval
    service.

    Attributes
    ----------
    model_name : str
        Identifier of the embedding model this embedder produces vectors for.
    """

    model_name: str

    @abstractmethod
    def get_embedder(self) -> LlamaIndexBaseEmbedding:
        """
        Return the LlamaIndex embedding instance.

        Returns
        -------
        LlamaIndexBaseEmbedding
            The underlying LlamaIndex embedding.
        """
        pass

    @classmethod
    @abstractmethod
    def from_config_dict(
            cls,
            config: Dict[str, Any],
        ) -> "BaseEmbedder":
        """Create an embedder from a configuration mapping.

        Parameters
        ----------
        config : dict[str, Any]
            Configuration mapping.

        Returns
        -------
        BaseEmbedder
            An initialised embedder implementation.

        Raises
        ------
        KeyError
            If required configuration keys are missing.
        """
        pass

    @classmethod
    def from_config(cls, config_path: str) -> "BaseEmbedder":
        """Create an embedder from a YAML configuration file.

        Parameters
        ----------
        config_path : str
            Path to a YAML file holding the embedder mapping.

        Returns
        -------
        BaseEmbedder
            An initialised embedder implementation.
        """
        with open(config_path, 'r') as f:
            cfg = yaml.safe_load(f)
        return cls.from_config_dict(cfg)

    def check_model(self, model: Optional[str]) -> None:
        """Raise if ``model`` is set and differs from :attr:`model_name`."""
        if model is not None and model != self.model_name:
            raise EmbeddingModelMismatchError(
                f"Embedder is configured for model {self.model_name!r} "
                f"but vectors for {model!r} were requested."
            )

    def embed_documents(self, documents: list[str]) -> list[list[float]]:
        """Embed multiple texts with the underlying provider.

        Parameters
        ----------
        documents : list[str]
            Texts to embed.

        Returns
        -------
        list[list[float]]
            Embedding vectors in input order.
        """
        return self.get_embedder().get_text_embedding_batch(documents)

    def embed(self, texts: Sequence[str], model: Optional[str] = None) -> list[list[float]]:
        """Embed ``texts`` for ``model``.

        Parameters
        ----------
        texts : Sequence[str]
            Texts to embed.
        model : str or None, optional
            Model the caller expects vectors for. Defaults to :attr:`model_name`.

        Returns
        -------
        list[list[float]]
            One vector per text, positionally aligned with ``texts``.

        Raises
        ------
        EmbeddingModelMismatchError
            If ``model`` differs from :attr:`model_name`.
        EmbeddingError
            If the provider returned a different number of vectors.
        """
        self.check_model(model)
        texts = list(texts)
        if not texts:
            return []
        vectors = [list(v) for v in self.embed_documents(texts)]
        if len(vectors) != len(texts):
            raise EmbeddingError(
                f"Embedding provider returned {len(vectors)} vectors for {len(texts)} inputs."
            )
        return vectors

    def embed_query(self, query: str, model: Optional[str] = None) -> list[float]:
        """Embed a single query string."""
        return self.embed([query], model)[0]

    async def aembed(self, texts: Sequence[str], model: Optional[str] = None) -> list[list[float]]:
        """Asynchronously embed a batch of texts.

        The provider call runs in the default thread pool via
        ``run_in_executor`` so several batches can be in flight at once.
        """
        loop = asyncio.get_running_loop()

        return await loop.run_in_executor(None, self.embed, list(texts), model)


class HuggingFaceEmbedder(BaseEmbedder):
    """Embedder backed by a Hugging Face SentenceTransformer via LlamaIndex.

    This implementation wraps :class:`llama_index.embeddings.huggingface.HuggingFaceEmbedding`.

    Parameters
    ----------
    model_name : str
        Name or path of the embedding model.
    device : str
        Device identifier (e.g., ``"cuda"``, ``"cpu"``, ``"mps"``).
    trust_remote_code : bool, optional
        Whether to allow custom model code from the Hugging Face Hub.
    model_kwargs : dict[str, Any] or None, optional
        Additional keyword arguments forwarded to the underlying embedder.
    """

    def __init__(
            self,
            model_name: str,
            *,
            device: str,
            trust_remote_code: bool = False,
            model_kwargs: dict[str, Any] = None,
        ):
        from llama_index.embeddings.huggingface import HuggingFaceEmbedding

        self.model_name = model_name
        self.embedder = HuggingFaceEmbedding(
            model_name=model_name,
            trust_remote_code=trust_remote_code,
            device=device,
            model_kwargs=model_kwargs or {},
        )

    def get_embedder(self) -> LlamaIndexBaseEmbedding:
        return self.embedder

    @classmethod
    def from_config_dict(
            cls,
            config: Dict[str, Any],
        ) -> "HuggingFaceEmbedder":
        """Create a Hugging Face embedder from a configuration mapping.

        Raises
        ------
        KeyError
            If ``model_name`` is missing.
        """
        return cls(
            model_name=config["model_name"],
            device=config.get("device", "cpu"),
            trust_remote_code=_as_bool(config.get("trust_remote_code"), False),
            model_kwargs=config.get("model_kwargs", {}),
        )


class OpenAILikeEmbedder(BaseEmbedder):
    """Embedder backed by an OpenAI-compatible embedding API via LlamaIndex.

    This implementation wraps :class:`llama_index.embeddings.openai_like.OpenAILikeEmbedding`.
    ``timeout`` bounds each provider request; a timed-out request fails that
    one call and leaves the loaded index untouched.

    Parameters
    ----------
    model_name : str
        Model identifier for the embedding endpoint.
    api_base : str
        Base URL for the OpenAI-compatible embedding API endpoint.
    api_key : str or None, optional
        API key sent with every request.
    model_kwargs : dict[str, Any] or None, optional
        Additional keyword arguments forwarded to the underlying embedder.
    timeout : float, optional
        Per-request timeout in seconds. Defaults to ``60.0``.
    max_retries : int, optional
        Retries performed by the provider client. Defaults to ``3``.
    embed_batch_size : int, optional
        Texts per provider request. Defaults to ``64``.
    """

    def __init__(
            self,
            model_name: str,
            *,
            api_base: str,
            api_key: str = None,
            model_kwargs: dict[str, Any] = None,
            timeout: float = 60.0,
            max_retries: int = 3,
            embed_batch_size: int = 64,
            reuse_client: bool = True,
        ):
        from llama_index.embeddings.openai_like import OpenAILikeEmbedding

        self.model_name = model_name
        self.embedder = OpenAILikeEmbedding(
            model_name=model_name,
            api_base=api_base,
            additional_kwargs=model_kwargs or {},
            api_key=api_key,
            timeout=timeout,
            max_retries=max_retries,
            embed_batch_size=embed_batch_size,
            reuse_client=reuse_client,
        )

    def get_embedder(self) -> LlamaIndexBaseEmbedding:
        return self.embedder

    @classmethod
    def from_config_dict(
            cls,
            config: Dict[str, Any],
        ) -> "OpenAILikeEmbedder":
        """Create an OpenAI-compatible embedder from a configuration mapping.

        Raises
        ------
        KeyError
            If ``model_name`` is missing.
        """
        return cls(
            model_name=config["model_name"],
            api_base=config.get("api_base", "https://api.openai.com/v1"),
            api_key=config.get("api_key"),
            model_kwargs=config.get("model_kwargs", {}),
            timeout=float(config.get("timeout", config.get("request_timeout", 60.0))),
            max_retries=int(config.get("max_retries", 3)),
            embed_batch_size=int(config.get("embed_batch_size", 64)),
            reuse_client=_as_bool(config.get("reuse_client"), True),
        )


class MockEmbedder(BaseEmbedder):
    """Offline embedder backed by :class:`llama_index.core.embeddings.MockEmbedding`.

    Every text maps to the same constant vector, so rankings are decided by
    the policy weights alone. Useful for wiring checks without network access.
    """

    def __init__(self, model_name: str = "mock", *, embed_dim: int = 8):
        from llama_index.core.embeddings import MockEmbedding

        self.model_name = model_name
        self.embedder = MockEmbedding(embed_dim=embed_dim)

    def get_embedder(self) -> LlamaIndexBaseEmbedding:
        return self.embedder

    @classmethod
    def from_config_dict(cls, config: Dict[str, Any]) -> "MockEmbedder":
        return cls(
            model_name=config.get("model_name", "mock"),
            embed_dim=int(config.get("embed_dim", 8)),
        )


# ----------------- Factory helpers -----------------

def _get_embedder_kind(cfg: Mapping[str, Any]) -> str:
    """Return the first non-empty ``kind``/``type``/``provider`` discriminator."""
    for key in ("kind", "type", "provider"):
        val = cfg.get(key)
        if isinstance(val, str) and val.strip():
            return val.strip()
    return ""


def _normalize_embedder_kind(kind: str) -> str:
    """Normalise an embedder kind string to a registry key.

    ``"OpenAILike"``, ``"openai-like"`` and ``"open_ai_like"`` all become
    ``"openai_like"``.
    """
    k = kind.strip()
    if not k:
        return ""

    # Insert underscores between camel-case boundaries.
    out: list[str] = []
    prev = ""
    for ch in k:
        if prev and prev.islower() and ch.isupper():
            out.append("_")
        out.append(ch)
        prev = ch

    k2 = "".join(out).replace("-", "_").replace(" ", "_").lower()
    while "__" in k2:
        k2 = k2.replace("__", "_")

    k2 = k2.replace("open_ai_like", "openai_like")
    k2 = k2.replace("open_ailike", "openai_like")
    k2 = k2.replace("openailike", "openai_like")
    return k2


_REGISTRY = {
    "huggingface": HuggingFaceEmbedder,
    "hugging_face": HuggingFaceEmbedder,
    "hf": HuggingFaceEmbedder,
    "openai_like": OpenAILikeEmbedder,
    "openai": OpenAILikeEmbedder,
    "mock": MockEmbedder,
}


def create_embedder(config: Mapping[str, Any]) -> BaseEmbedder:
    """Create an embedder implementation from a configuration mapping.

    The concrete implementation is selected by a discriminator field in the
    configuration (one of ``kind``, ``type`` or ``provider``).

    Parameters
    ----------
    config : Mapping[str, Any]
        Configuration mapping used to construct the embedder.

    Returns
    -------
    BaseEmbedder
        An initialised embedder implementation.

    Raises
    ------
    TypeError
        If ``config`` is not a mapping.
    ValueError
        If the discriminator selects an unsupported implementation.

    Notes
    -----
    If no discriminator is provided, the default implementation is
    :class:`~citerag.retrieval.embedder.OpenAILikeEmbedder`.
    """
    if not isinstance(config, Mapping):
        raise TypeError(f"create_embedder expected a mapping/dict, got {type(config)}")

    kind_raw = _get_embedder_kind(config)
    kind = _normalize_embedder_kind(kind_raw)

    cls = _REGISTRY.get(kind) if kind else OpenAILikeEmbedder
    if cls is None:
        raise ValueError(
            f"Unknown embedder kind '{kind_raw}' (normalized to '{kind}'). "
            f"Supported kinds: {sorted(_REGISTRY.keys())}."
        )

    return cls.from_config_dict(dict(config))


__all__ = [
    "BaseEmbedder",
    "EmbeddingError",
    "HuggingFaceEmbedder",
    "OpenAILikeEmbedder",
    "MockEmbedder",
    "create_embedder",
]
