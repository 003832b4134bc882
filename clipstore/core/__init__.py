"""Core storage, clipboard and action components"""
