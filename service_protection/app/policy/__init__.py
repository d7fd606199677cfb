"""
Protection policy package.

Turns per-document settings into an effective access policy and decides
whether a visitor may view a document under it. Inheritance follows the
document tree: a document that does not override inherits the conditions
of its nearest ancestor that cascades protection to its children.

Modules of interest:
- models: Policy, Document and decision data classes plus API models.
- attributes: Persisted attribute schema with sanitizers and validators.
- settings: Self-healing reads and refusing writes of attribute values.
- resolver: Ancestor search and effective policy resolution.
- evaluator: Access gates and redirect selection.
- editor: Inherit/override editing and editor summaries.
"""
