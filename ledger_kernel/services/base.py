"""
BaseService -- abstract base for kernel services.

Responsibility:
    Common constructor and session-handling contract for services in the
    kernel layer.  Kernel services use ``session.flush()`` and never
    ``session.commit()``; the module service that called them owns the
    transaction boundary.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseService(ABC):
    """
    Abstract base class for kernel services.

    Guarantees:
        - The service never commits; the caller controls transaction
          boundaries so a multi-step operation stays atomic.
    """

    def __init__(self, session: Session):
        self.session = session
