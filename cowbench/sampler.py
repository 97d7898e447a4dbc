"""
Deterministic object sampling.

Large images hold tens of thousands of objects; querying every placement is
expensive, so an evenly spaced subset of object names spanning the image is
mapped instead. The sample is not random: an unchanged image always yields the
same names.
"""

from typing import List

from cowbench.models import ImageRef

DEFAULT_SAMPLE_SIZE = 20


def object_name(prefix: str, index: int) -> str:
    """RADOS object name of the object at an offset index."""
    return f"{prefix}.{index:016x}"


def sample_indexes(size_bytes: int, object_size: int, k: int = DEFAULT_SAMPLE_SIZE) -> List[int]:
    """Offsets of at most k evenly spaced objects.

    Args:
        size_bytes: virtual size of the image
        object_size: size of one object
        k: wanted sample size
    Returns:
        distinct ascending offsets within [0, total objects)
    """
    if object_size <= 0:
        raise ValueError(f"object size must be positive, got {object_size}")
    if k < 1:
        raise ValueError(f"sample size must be positive, got {k}")

    total = max(1, size_bytes // object_size)
    if total <= k:
        return list(range(total))

    step = max(1, total // k)
    return list(range(0, total, step))[:k]


def sample_object_names(image: ImageRef, k: int = DEFAULT_SAMPLE_SIZE) -> List[str]:
    """Object names to query for placement."""
    return [
        object_name(image.block_prefix, index)
        for index in sample_indexes(image.size_bytes, image.object_size, k)
    ]


def landmark_objects(image: ImageRef) -> List[tuple]:
    """First, middle and last object of the image with a short description."""
    total = image.total_objects
    landmarks = [(object_name(image.block_prefix, 0), "first chunk of disk")]
    if total > 2:
        landmarks.append((object_name(image.block_prefix, total // 2), "middle of disk"))
    if total > 1:
        landmarks.append((object_name(image.block_prefix, total - 1), "last chunk of disk"))
    return landmarks
