"""Internal libraries for the mq tool.

Modules include configuration, constants, the error taxonomy, data models,
the queue handle manager, the message codec, and metrics.
"""
