# Copyright 2026 Formwork Contributors
# SPDX-License-Identifier: Apache-2.0

"""Sphinx configuration for Formwork documentation."""

project = "Formwork"
author = "Formwork Contributors"
release = "0.1.0"

extensions: list[str] = []

html_theme = "alabaster"
