"""Generation pipeline stages.

Each stage is a pure function (or, for tools, a small registry) that consumes
the previous stage's immutable output:

- arguments: formula arguments -> ParsedRequest
- tools: tool specification -> ToolResult
- prompts: request + config + tool context -> Prompt
- shaper: completion text -> ShapedItems
- postprocess: ShapedItems -> Grid
"""
