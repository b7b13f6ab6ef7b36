from .basic.ETM import ETM  # 导入嵌入主题模型
from .Encoder import MLPEncoder  # 导入变分编码器
