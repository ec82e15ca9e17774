"""
Services - delegation, execution and chat orchestration.
"""
