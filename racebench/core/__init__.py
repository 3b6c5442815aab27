"""Timing harness, statistics and reporting"""
