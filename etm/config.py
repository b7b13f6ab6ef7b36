#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
配置文件 - 嵌入主题模型(ETM)的默认超参数
模型、训练器与评估函数的关键字参数默认值均取自此处
"""

# 模型配置
DEFAULT_NUM_TOPICS = 20           # 主题数量K
DEFAULT_EMBED_SIZE = 50           # 未提供预训练词嵌入时的嵌入维度E
DEFAULT_EN_UNITS = 800            # 变分编码器隐藏层宽度
DEFAULT_ACTIVATION = 'relu'       # 变分编码器激活函数
DEFAULT_DROPOUT = 0.5             # 变分编码器dropout率

# 训练配置
DEFAULT_BATCH_SIZE = 1000         # 批次大小
DEFAULT_EPOCHS = 40               # 训练轮数
DEFAULT_LR = 0.005                # Adam默认学习率
DEFAULT_WEIGHT_DECAY = 1.2e-6     # Adam默认权重衰减
LR_ANNEAL_FACTOR = 4              # 学习率退火因子，<=0 表示关闭退火
LR_ANNEAL_NONMONO = 10            # 非单调窗口大小
MIN_LR = 1e-5                     # 学习率下限，低于此值不再退火
TRAIN_PCT = 0.7                   # 训练集比例，其余平分为两个验证半集

# 数值配置
LOG_EPS = 1e-6                    # 解码器对数下界
BEST_PPL_INIT = 1e9               # 最优困惑度初始值

# 报告配置
DEFAULT_TOP_N = 10                # 每个主题输出的主题词数量
