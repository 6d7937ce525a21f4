"""Vehicles domain - Vehicles owned by clients"""
