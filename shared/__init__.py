"""Shared configuration and logging for the workflow compiler"""
