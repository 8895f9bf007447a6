"""
Core package for shared configuration, logging and security utilities.
"""
