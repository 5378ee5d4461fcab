#!/usr/bin/env python3
"""A CLI for the dyson_link library."""

from __future__ import annotations
