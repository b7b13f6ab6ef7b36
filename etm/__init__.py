from . import config  # 导入默认配置模块
from . import models  # 导入模型模块
from . import data  # 导入数据模块
from . import eva  # 导入评估模块
from . import trainers  # 导入训练器模块

# data  # 数据相关导入
from .data.basic_dataset import BasicDataset  # 导入基础数据集类
from .data.basic_dataset import TokenCounts  # 导入词-计数表示
from .data.basic_dataset import as_tokencounts  # 导入稀疏矩阵转换函数
from .data.basic_dataset import get_batch  # 导入稠密批次构建函数
from .data.basic_dataset import split_train_test  # 导入训练/验证划分函数
from .data import file_utils  # 导入文件工具模块

# trainers  # 训练器相关导入
from .trainers.basic.ETM_trainer import ETMTrainer  # 导入ETM训练器
from .trainers.basic.ETM_trainer import TrainingState  # 导入训练状态

# models  # 模型相关导入
from .models.basic.ETM import ETM  # 导入嵌入主题模型
from .models.basic.ETM import predict  # 导入预测函数
from .models.Encoder import Activation  # 导入激活函数枚举

__version__ = "0.1.0"  # 版本号
