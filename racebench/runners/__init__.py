"""Command line runners"""
