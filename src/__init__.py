"""Learner-state engine backend.

Real-time learner modelling for entrance-exam practice: estimates
cognitive load, comprehension depth, metacognition and motivation per
response event and adapts difficulty and support accordingly.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
