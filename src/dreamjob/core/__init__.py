"""Core functionality for occupation portrait generation.

- **config**: Pydantic Settings configuration (``DREAMJOB_`` prefix)
- **errors**: Error taxonomy shared by every layer
- **image_normalizer**: Cover-fit JPEG normalisation with Pillow
- **prompt_builder**: Occupation prompt template
- **stability_client**: Single-call Stability AI image-to-image client

Usage Example
-------------
::

    from dreamjob.core import StabilityClient, build_prompt, config, normalize_image

    client = StabilityClient.from_config(config)
    jpeg = normalize_image(photo_bytes, 1024, 1024)
    image_b64 = client.generate(jpeg, build_prompt("deep sea welder"))
"""

from dreamjob.core.config import DreamjobConfig, config
from dreamjob.core.errors import DreamjobError
from dreamjob.core.image_normalizer import normalize_image
from dreamjob.core.prompt_builder import build_prompt
from dreamjob.core.stability_client import StabilityClient

__all__ = [
    "DreamjobConfig",
    "DreamjobError",
    "StabilityClient",
    "build_prompt",
    "config",
    "normalize_image",
]
