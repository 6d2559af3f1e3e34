"""Parallel and JIT-compiled evaluation backends."""
