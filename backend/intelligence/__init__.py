"""
Intelligence module: upstream work-score predictions, their calibration
against check-ins, and live/inferred display blending.
"""
