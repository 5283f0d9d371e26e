class RequestError(Exception):
    status: int = 500


class MalformedRequest(RequestError):
    status = 400


class DecodeFailure(RequestError):
    status = 500


class NotFound(RequestError):
    status = 404


class SnapshotError(Exception):
    pass


class SnapshotCorrupted(SnapshotError):
    pass
