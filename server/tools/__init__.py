"""
Tool providers and the machinery that turns them into a registry.

descriptor    - ToolDescriptor, ToolSet, parameter models, result helpers
injection     - pin server-side context into tool parameters
confirmation  - confirm=true gate for mutating tools
composer      - feature groups + safety mode -> ToolRegistry
"""
