"""
Model loading for the detection system.

Responsibility:
    Load the ONNX detection model from disk, open an ONNX Runtime session
    with the configured execution providers, and read the input/output
    tensor names once from the session metadata.

Non-goals:
    - No preprocessing, inference, or frame-level logic.
    - No automatic model downloading.
    - No fallback to alternative models.

Failure behavior:
    - A missing model file raises ModelLoadError with the exact missing
      path and expected location.
    - A file ONNX Runtime cannot parse raises ModelLoadError.
"""

import logging

import onnxruntime as ort

from nudenet.config import ModelConfig, resolve_path
from nudenet.exceptions import ModelLoadError
from nudenet.session_cache import SessionHandle

logger = logging.getLogger(__name__)


def load_session(config: ModelConfig) -> SessionHandle:
    """Load the detection model and return a ready-to-run SessionHandle.

    Args:
        config: ModelConfig containing the model path and providers.

    Returns:
        A SessionHandle with the session and its cached I/O names.

    Raises:
        ModelLoadError: If the model file is missing or cannot be parsed.
    """
    model_path = resolve_path(config.model_path)

    # Validate file existence first
    if not model_path.is_file():
        raise ModelLoadError(
            f"Model file not found.\n"
            f"  Expected: {model_path}\n"
            f"  Provide the file or update 'model.model_path' in your config."
        )

    logger.info("Loading model: %s (providers=%s)", model_path, list(config.providers))
    try:
        session = ort.InferenceSession(
            str(model_path),
            sess_options=ort.SessionOptions(),
            providers=list(config.providers),
        )
    except Exception as e:
        raise ModelLoadError(
            f"Failed to load model {model_path}.\n"
            f"  ONNX Runtime error: {e}"
        ) from e

    inputs = session.get_inputs()
    outputs = session.get_outputs()
    if not inputs or not outputs:
        raise ModelLoadError(
            f"Model {model_path} must declare one input and one output, "
            f"got {len(inputs)} input(s) and {len(outputs)} output(s)."
        )

    handle = SessionHandle(
        session=session,
        input_name=inputs[0].name,
        output_name=outputs[0].name,
    )

    logger.info(
        "Model loaded successfully (input=%s, output=%s).",
        handle.input_name, handle.output_name,
    )
    return handle
