from .workflow import BlackholeWorkflow, PipelineResult

__all__ = ["BlackholeWorkflow", "PipelineResult"]
