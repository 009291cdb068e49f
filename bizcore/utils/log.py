import ujson as json
import logging
import os
import socket
import threading
import traceback
from contextlib import contextmanager
from dataclasses import dataclass, field
from functools import wraps
from logging import handlers
from pathlib import Path
from typing import Union, Dict, Optional, Any

from bizcore import consts
import bizcore.utils.repo_info as repo_info
from bizcore.utils.log_context_manager import logging_context_handler
from bizcore.utils.strings import str2bool

_log_lock = threading.Lock()
_log_was_setup = False
_log_setup_location = ""

HUMAN_LOG_FORMAT = '%(asctime)s - %(name)s - %(filename)s:%(lineno)d - %(thread)d - %(levelname)s - %(message)s'
JSON_LOG_KEYS = 'asctime;name;filename;lineno;threadName;levelname;message;exc_info'
ROTATE_MAX_BYTES = 16 * 1024 * 1024
ROTATE_BACKUP_COUNT = 16


@dataclass
class OriginInfo:
    service: str
    version: str
    instance: str = field(default_factory=socket.gethostname)


class JsonLogFormatter(logging.Formatter):
    """Single-line JSON records, enriched with the active `logging_context`."""

    def __init__(self, json_format: str = JSON_LOG_KEYS, origin_info: Optional[OriginInfo] = None):
        super().__init__()
        self.json_keys_list = json_format.split(';')
        self.origin_info = origin_info
        self.uses_time = "asctime" in self.json_keys_list
        self.uses_exc_info = "exc_info" in self.json_keys_list

    def format(self, record: logging.LogRecord) -> str:
        format_data = {k: str(v) for k, v in record.__dict__.items() if k in self.json_keys_list and v is not None}
        if self.uses_time and "asctime" not in format_data:
            format_data["asctime"] = self.formatTime(record, self.datefmt)
        if self.uses_exc_info and record.exc_info:
            format_data["exc_info"] = self.formatException(record.exc_info)
        else:
            format_data.pop("exc_info", None)

        extra_log_context = logging_context_handler.get_current_context()
        output = {**format_data, **extra_log_context, 'message': self._get_message(record)}
        if self.origin_info:
            output["origin"] = self.origin_info.__dict__

        return json.dumps(output, escape_forward_slashes=False, default=str)

    def _get_message(self, record: logging.LogRecord) -> Union[str, Dict]:
        return record.msg if isinstance(record.msg, dict) else record.getMessage()


@contextmanager
def logging_context(logging_context_dataclass: Union[Any, Dict]):
    """
    Attach key/value pairs to every JSON log record emitted inside the block.

    usage:

    with logging_context({"tenant_id": tenant_id}):
        logger.info("computing metrics")

    # JSON output: {"message": "computing metrics", "tenant_id": "...", ...}
    """
    source_dict = logging_context_dataclass if \
        isinstance(logging_context_dataclass, dict) else logging_context_dataclass.__dict__

    filtered_dict = {k: v for k, v in source_dict.items() if v is not None}
    logging_context_handler.add_context(**filtered_dict)
    try:
        yield
    finally:
        logging_context_handler.remove_context()


def _rotating_handler(path: Path, level: int, formatter: logging.Formatter,
                      max_bytes: int = ROTATE_MAX_BYTES, backup_count: int = ROTATE_BACKUP_COUNT):
    handler = handlers.RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backup_count)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logger(log_location=None,
                 log_name=None,
                 main_log_severity=logging.INFO,
                 console_log_severity=logging.INFO,
                 console_log_format: str = consts.LOCAL_LOGGING,
                 create_debug_log=False,
                 create_fs_log=True,
                 create_console_log=True,
                 create_remote_log=False,
                 remote_log_severity=logging.INFO,
                 origin_info: Optional[OriginInfo] = None):
    """ Configures the root logger. Only entry-point scripts call this; additional
    calls are ignored with a warning.

    The following environment variables override function arguments:
     * BIZCORE_ENABLE_DEBUG_LOG (bool) - overrides create_debug_log
     * BIZCORE_ENABLE_LOCAL_LOG (bool) - overrides create_fs_log
     * BIZCORE_ENABLE_REMOTE_LOG (bool) - overrides create_remote_log
     * BIZCORE_LOCAL_LOG_SEVERITY (int) - overrides main_log_severity
     * BIZCORE_REMOTE_LOG_SEVERITY (int) - overrides remote_log_severity
     * LOGGING_FORMAT (str) - overrides console_log_format

    :param log_location: Folder where log files are written (default - `<project>/logs`)
    :param log_name: File name base for file-system logs (default - repo name)
    :param main_log_severity: Minimum severity for the main file log
    :param console_log_severity: Minimum severity for the console log
    :param console_log_format: `LOCAL` (human readable) or `REMOTE` (JSON)
    :param create_debug_log: Also write a debug-level file log
    :param create_fs_log: Write human readable file logs
    :param create_console_log: Write to the console
    :param create_remote_log: Write a JSON file log for shipping to a log collector
    :param remote_log_severity: Minimum severity for the JSON file log
    :param origin_info: Service origin appended to JSON records
    """
    global _log_was_setup
    global _log_setup_location

    with _log_lock:
        if _log_was_setup:
            logging.root.warning(f"Logger was already set up, ignoring additional setup! "
                                 f"Previously initialized here: {_log_setup_location}")
            return
        logging.root.setLevel(logging.DEBUG)
        json_formatter = JsonLogFormatter(origin_info=origin_info)
        human_formatter = logging.Formatter(HUMAN_LOG_FORMAT)

        create_debug_log = str2bool(os.environ.get(consts.ENABLE_DEBUG_LOG, str(create_debug_log)))
        create_fs_log = str2bool(os.environ.get(consts.ENABLE_LOCAL_LOG, str(create_fs_log)))
        create_remote_log = str2bool(os.environ.get(consts.ENABLE_REMOTE_LOG, str(create_remote_log)))
        main_log_severity = int(os.environ.get(consts.LOCAL_LOG_MIN_SEVERITY, str(main_log_severity)))
        remote_log_severity = int(os.environ.get(consts.REMOTE_LOG_MIN_SEVERITY, str(remote_log_severity)))
        console_log_format = os.environ.get(consts.LOGGING_FORMAT_ENV, console_log_format)

        if console_log_format not in (consts.LOCAL_LOGGING, consts.REMOTE_LOGGING):
            raise ValueError(f"Invalid value for console_log_format ({console_log_format}) should be either "
                             f"{consts.LOCAL_LOGGING} or {consts.REMOTE_LOGGING}")

        if create_fs_log:
            if not log_location:
                from bizcore.paths import logs_root
                log_location = logs_root
            if not log_name:
                log_name = repo_info.repo_name()
            os.makedirs(log_location, exist_ok=True)
            log_dir = Path(log_location)

            logging.root.addHandler(_rotating_handler(log_dir / f"{log_name}.log", main_log_severity, human_formatter))
            logging.root.addHandler(_rotating_handler(log_dir / f"{log_name}_errors.log", logging.ERROR, human_formatter))
            if create_debug_log:
                logging.root.addHandler(_rotating_handler(log_dir / f"{log_name}_debug.log", logging.DEBUG, human_formatter))
            if create_remote_log:
                logging.root.addHandler(_rotating_handler(log_dir / f"{log_name}_json.log", remote_log_severity,
                                                          json_formatter, max_bytes=4 * 1024 * 1024, backup_count=2))

        if create_console_log:
            stream_handler = logging.StreamHandler()
            stream_handler.setLevel(console_log_severity)
            if console_log_format == consts.LOCAL_LOGGING:
                stream_handler.setFormatter(human_formatter)
            else:
                stream_handler.setFormatter(json_formatter)
            logging.root.addHandler(stream_handler)
        _log_setup_location = "".join(traceback.format_stack())
        _log_was_setup = True


def get_logger(logger_name=None):
    return logging.getLogger(logger_name or repo_info.repo_name())


def log_in_out(logger=None, is_print_input=True, is_print_output=True, is_method=True, log_level=logging.DEBUG):
    """
    @param logger- defaults to the logger of the decorated function's module
    @param is_print_input- toggle printing input arguments
    @param is_print_output- toggle printing output values
    @param is_method- True for methods, False for functions. Makes "self" not printed in case of is_print_input==True
    @param log_level-

    @returns- a decorator that logs when entering or exiting the decorated function.

    Usage:
    class MergeEngine:
        @log_in_out(is_print_output=False)
        def merge(self, session, business_types):
            ...

    engine.merge(session, ["HVAC"]) --> logs
    Entered merge with args=(<Session>, ['HVAC']), kwargs={}
    Exited merge
    """

    def decor(fn):
        fn_logger = logger or get_logger(fn.__module__)

        @wraps(fn)
        def wrapper(*args, **kwargs):
            if is_print_input:
                fn_logger.log(log_level, f"Entered {fn.__name__} with args={args[1:] if is_method else args}, kwargs={kwargs}")
            else:
                fn_logger.log(log_level, f"Entered {fn.__name__}")

            result = fn(*args, **kwargs)

            if is_print_output and result is not None:
                fn_logger.log(log_level, f"Exited {fn.__name__} with result {result}")
            else:
                fn_logger.log(log_level, f"Exited {fn.__name__}")

            return result

        return wrapper

    return decor
