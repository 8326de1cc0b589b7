# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services layer.

Domains:
    learner_session: Session lifecycle, per-session locking and the
        gateways to the profile store, content catalog and archive.
"""
