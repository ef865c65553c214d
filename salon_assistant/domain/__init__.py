"""领域层模型与协议。

包含：
- models: Message / GroundingChunk / ActivityState 等共享数据结构。
- conversation: 只追加的 MessageLog 及其只读视图协议。
- exceptions: 业务异常类型定义。
"""
