"""
models/ - Record Mapping Metadata
=================================
Declarations attached to record dataclasses, the descriptors resolved
from them, the composition codec, and the `Record` operation mixin.
"""
