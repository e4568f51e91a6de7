"""Scoring pipeline entrypoints."""


def run_pipeline(*args, **kwargs):
    from nuclearqc.pipeline.run import run_pipeline as _run_pipeline

    return _run_pipeline(*args, **kwargs)


def score_matrix(*args, **kwargs):
    from nuclearqc.pipeline.run import score_matrix as _score_matrix

    return _score_matrix(*args, **kwargs)


__all__ = ["run_pipeline", "score_matrix"]
