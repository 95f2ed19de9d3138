import re
from typing import Any, Union

import msgpack
import orjson


_CAMEL_BOUNDARY = re.compile(r'(?<=[a-z0-9])([A-Z])')


def to_snake_case(key: str) -> str:
    return _CAMEL_BOUNDARY.sub(r'_\1', key).lower()


class MessageCodec:
    """Encodes outbound envelopes and decodes inbound frames

    Text frames carry JSON (orjson), binary frames carry MessagePack.
    """

    @staticmethod
    def encode_message(*, data: dict[str, Any], use_binary: bool = False) -> Union[str, bytes]:
        if use_binary:
            return msgpack.packb(data, default=str)  # type: ignore
        return orjson.dumps(data, default=str).decode()

    @staticmethod
    def decode_message(*, raw_data: Union[str, bytes]) -> dict[str, Any]:
        try:
            if isinstance(raw_data, bytes):
                message = msgpack.unpackb(raw_data, raw=False)
            else:
                message = orjson.loads(raw_data)
        except (msgpack.UnpackException, ValueError, TypeError) as e:
            raise ValueError(f'Failed to decode message: {e}') from e

        if not isinstance(message, dict) or not isinstance(message.get('event'), str):
            raise ValueError('Message must be an object with a string "event" field')
        return message

    @staticmethod
    def normalize_payload(data: Any) -> Any:
        """camelCase keys -> snake_case (top level); scalars pass through unchanged"""
        if not isinstance(data, dict):
            return data
        return {to_snake_case(str(key)): value for key, value in data.items()}
