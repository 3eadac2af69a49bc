class PipelineError(Exception):
    pass


class InvalidMessageError(PipelineError):
    pass


class SourceFetchError(PipelineError):
    pass


class TransformError(PipelineError):
    pass


class StorageError(PipelineError):
    pass


class PersistenceError(PipelineError):
    pass


class PublishError(PipelineError):
    pass
