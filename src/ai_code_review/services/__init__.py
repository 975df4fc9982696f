"""
Services for talking to DeepSeek and orchestrating reviews
"""
