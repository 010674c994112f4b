"""Exception taxonomy for slidecompose.

  - ValidationError: bad section input, raised before any job exists.
  - AssemblyError: timeline invariant broken while building a composition.
  - RenderFailure: the renderer could not produce the artifact. Recorded
    on the job, never raised into submit().
  - NotFoundError: unknown (or evicted) job id.
  - JobStateError: illegal job state transition.
"""


class SlideComposeError(Exception):
    """Base class for all slidecompose errors."""


class ValidationError(SlideComposeError, ValueError):
    pass


class AssemblyError(SlideComposeError, RuntimeError):
    pass


class RenderFailure(SlideComposeError, RuntimeError):
    pass


class NotFoundError(SlideComposeError, LookupError):
    pass


class JobStateError(SlideComposeError, RuntimeError):
    pass
