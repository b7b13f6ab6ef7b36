from .basic_dataset import BasicDataset  # 导入基础数据集类
from .basic_dataset import TokenCounts  # 导入词-计数表示
