"""
Slot discovery pipelines: recommendation scoring and calendar aggregation.
"""
