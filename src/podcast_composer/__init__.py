"""Podcast Composer -- select notebook content and compile it into a podcast generation request.

Core modules:
    config     -- Configuration via pydantic-settings (.env + env vars), loguru setup
    cli        -- Click CLI entry point: list, select, estimate, submit
    session    -- One dialog lifetime: wires loader, store, aggregator, compiler, trigger
    selection  -- Selection store (notebook -> source/note inclusion modes), context configs
    defaults   -- Default inclusion mode of newly observed sources and notes
    loader     -- Lazy, cached per-notebook source/note collection loading
    aggregator -- Live token/char estimate, version-stamped so stale passes are dropped
    compiler   -- Authoritative content compilation and payload validation at submit time
    trigger    -- Generation job submission
    models     -- Enums, dataclasses, wire labels
    errors     -- Exception hierarchy and HTTP status categorization

Subpackages:
    api -- Notebook server REST client and id/fuzzy-name lookup
"""
