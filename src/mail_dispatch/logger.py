# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Logging utilities for the mail dispatcher.

Loggers are plain standard library loggers. Handlers, level and format are
configured once by the entry point (see ``mail_dispatch.cli``) via
``logging.basicConfig()`` so library code never adds duplicate handlers.

Example:
    Typical usage in a module::

        from mail_dispatch.logger import get_logger

        logger = get_logger("mail_dispatch.smtp")
        logger.info("Message accepted by relay")
"""

import logging


def get_logger(name: str = "MailDispatch") -> logging.Logger:
    """Retrieve a logger bound to ``name``.

    Args:
        name: The logger name. Defaults to "MailDispatch".

    Returns:
        A ``logging.Logger`` instance.
    """
    return logging.getLogger(name)
