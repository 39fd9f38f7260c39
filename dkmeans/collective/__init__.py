from .base import Communicator
from .local import ThreadCommunicator, ThreadGroup, run_in_threads
from .process import ProcessCommunicator, run_in_processes

__all__ = [
    "Communicator",
    "ThreadCommunicator",
    "ThreadGroup",
    "run_in_threads",
    "ProcessCommunicator",
    "run_in_processes",
]
