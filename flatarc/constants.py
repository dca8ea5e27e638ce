import struct


# Record framing: name bytes, NAME_DELIMITER, size field, payload
NAME_DELIMITER = b"\x00"

# Size field layouts
# SIZE_LE64 is the flatarc default: fixed 8 bytes, little endian, unsigned.
# SIZE_NATIVE reads/writes the legacy layout (native byte order and width of
# the producing machine) and is only portable between identical platforms.
SIZE_LE64 = struct.Struct("<Q")
SIZE_NATIVE = struct.Struct("@Q")

MAX_RECORD_SIZE = (1 << 64) - 1


DEFAULT_BUFFER_SIZE = 1_048_576  # 1 MiB
