"""Test package for TapZone Lab.

Core tests drive the acquisition engines with a ``FakeClock`` and never
import pygame; the smoke tests run the UI headlessly with pygame's dummy
video driver. Run ``pytest`` from the project root.
"""
