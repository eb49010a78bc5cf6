from __future__ import annotations

BUFFER_SIZE = 28  # code(4) + count(8) + value(16)
SEQ_LEN = 16
# largest UDP payload over IPv4, minus the sequence prefix
MAX_PAYLOAD = 65507 - SEQ_LEN

CODE_FORMAT = "!i"
COUNT_FORMAT = "!Q"

# code 1 is Start, Ok or Syn depending on the phase
CODE_START = 1
CODE_OK = 1
CODE_SYN = 1
CODE_ERR = 2
CODE_STOP = 3
CODE_RESYNC = 4
CODE_RESEND_FROM_SEQ = 5

MAXIMUM_SYN_REQUESTS = 100

DEFAULT_PORT = 55667
DEFAULT_SIZE = 1024
DEFAULT_TIME = 10
DEFAULT_TIMEOUT_MS = 0
