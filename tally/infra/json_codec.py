from typing import Iterable, Mapping

from pydantic import ConfigDict, TypeAdapter, ValidationError

from tally.core.model.reading import Reading

# Numbers are accepted and kept as their textual form, anything nested is rejected.
_CODEC_CONFIG = ConfigDict(coerce_numbers_to_str=True)

_READING = TypeAdapter(dict[str, str], config=_CODEC_CONFIG)
_READINGS = TypeAdapter(list[dict[str, str]], config=_CODEC_CONFIG)


class CodecError(ValueError):
    pass


class ReadingCodec:
    @staticmethod
    def decode(raw: bytes | str) -> Reading:
        try:
            return _READING.validate_json(raw)
        except ValidationError as exc:
            raise CodecError(f"Invalid reading: {exc.errors()[0]['msg']}") from exc

    @staticmethod
    def decode_many(raw: bytes | str) -> list[Reading]:
        try:
            return _READINGS.validate_json(raw)
        except ValidationError as exc:
            raise CodecError(f"Invalid reading array: {exc.errors()[0]['msg']}") from exc

    @staticmethod
    def encode(reading: Mapping[str, str]) -> bytes:
        return _READING.dump_json(dict(reading))

    @staticmethod
    def encode_many(readings: Iterable[Mapping[str, str]], indent: int | None = None) -> bytes:
        return _READINGS.dump_json([dict(r) for r in readings], indent=indent)
