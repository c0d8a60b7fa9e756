"""Data pipeline for multichannel_regression."""

from multichannel_regression.data.deserializers import (
    CTFDeserializer,
    CTFStreamConfig,
    Deserializer,
    ImageDeserializer,
)
from multichannel_regression.data.source import (
    TARGETS_STREAM,
    CompositeMinibatchSource,
    create_train_minibatch_source,
    features_stream_name,
    labels_stream_name,
)

__all__ = [
    "TARGETS_STREAM",
    "CTFDeserializer",
    "CTFStreamConfig",
    "CompositeMinibatchSource",
    "Deserializer",
    "ImageDeserializer",
    "create_train_minibatch_source",
    "features_stream_name",
    "labels_stream_name",
]
