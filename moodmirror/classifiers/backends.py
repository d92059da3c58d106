"""
Model backends.

Requires: pip install onnxruntime transformers
(or: pip install moodmirror[models])

The classifiers only need objects with a `run` method; these wrap
exported ONNX models and a HuggingFace tokenizer to satisfy that.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping, Sequence

import numpy as np
from numpy.typing import NDArray


def _import_onnxruntime():
    try:
        import onnxruntime
    except ImportError:
        raise ImportError(
            "onnxruntime is required for ONNX model backends.\n"
            "Install with: pip install onnxruntime"
        )
    return onnxruntime


class OnnxModel:
    """Thin wrapper over an onnxruntime InferenceSession."""

    def __init__(
        self,
        path: str | Path,
        providers: Sequence[str] = ("CPUExecutionProvider",),
    ) -> None:
        ort = _import_onnxruntime()
        self._path = Path(path)
        self._session = ort.InferenceSession(str(self._path), providers=list(providers))
        self._output_names = [o.name for o in self._session.get_outputs()]

    @property
    def output_names(self) -> list[str]:
        return list(self._output_names)

    def _run(self, feeds: dict[str, NDArray], output: str | None = None) -> NDArray:
        name = output if output in self._output_names else self._output_names[0]
        (result,) = self._session.run([name], feeds)
        return np.asarray(result)


class OnnxEmotionModel(OnnxModel):
    """Speech emotion model exported with an `input_values` input."""

    def run(self, input_values: NDArray[np.float32]) -> NDArray:
        return self._run({"input_values": input_values})


class OnnxSentimentModel(OnnxModel):
    """Sequence classification model exported with `input_ids` / `attention_mask`."""

    def run(self, input_ids: NDArray, attention_mask: NDArray) -> NDArray:
        feeds = {
            "input_ids": np.asarray(input_ids, dtype=np.int64),
            "attention_mask": np.asarray(attention_mask, dtype=np.int64),
        }
        return self._run(feeds, output="logits")


class HuggingFaceTokenizer:
    """
    Tokenizer callable backed by transformers.AutoTokenizer.

    Pads and truncates to the model's maximum length.
    """

    def __init__(self, model_name_or_path: str, local_files_only: bool = False) -> None:
        try:
            from transformers import AutoTokenizer
        except ImportError:
            raise ImportError(
                "transformers is required for HuggingFaceTokenizer.\n"
                "Install with: pip install transformers"
            )
        self._tokenizer = AutoTokenizer.from_pretrained(
            model_name_or_path,
            local_files_only=local_files_only,
        )

    def __call__(self, text: str) -> Mapping[str, Any]:
        encoded = self._tokenizer(text, padding=True, truncation=True, return_tensors="np")
        return {
            "input_ids": encoded["input_ids"],
            "attention_mask": encoded["attention_mask"],
        }
