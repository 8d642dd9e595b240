"""Studio gateway: provider proxy endpoints and async job tracking.

The package fronts a hosted generative image/video provider. Routers under
:mod:`.api` forward requests through :class:`.providers.ProviderGateway`;
long-running operations are driven to completion by
:class:`.jobs.PollSession` and surfaced through
:class:`.client.EditorController`.
"""
