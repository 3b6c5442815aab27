"""Graphs generated from race reports"""
