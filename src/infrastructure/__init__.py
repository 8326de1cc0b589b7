# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Infrastructure layer for external collaborators.

This package contains the interfaces and in-process adapters for:
- Learner Profile Store (read)
- Content Catalog (read)
- Archival Sink (write)
"""
