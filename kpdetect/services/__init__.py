"""
Pipeline services: preprocessing, inference invocation and orchestration.
"""
