from enum import Enum  # 导入枚举类型
import torch  # 导入PyTorch库
import torch.nn as nn  # 导入神经网络模块
import torch.nn.functional as F  # 导入函数式接口


class Activation(Enum):  # 定义激活函数枚举
    RELU = 'relu'
    TANH = 'tanh'
    SOFTPLUS = 'softplus'
    RRELU = 'rrelu'
    LEAKYRELU = 'leakyrelu'
    ELU = 'elu'
    SELU = 'selu'
    GLU = 'glu'


ACTIVATIONS = {  # 激活函数字典，所有函数签名为 f(x, training)
    Activation.RELU: lambda x, training: F.relu(x),  # ReLU
    Activation.TANH: lambda x, training: torch.tanh(x),  # 双曲正切
    Activation.SOFTPLUS: lambda x, training: F.softplus(x),  # Softplus
    Activation.RRELU: lambda x, training: F.rrelu(x, training=training),  # 随机ReLU，仅训练时随机
    Activation.LEAKYRELU: lambda x, training: F.leaky_relu(x),  # 泄漏ReLU
    Activation.ELU: lambda x, training: F.elu(x),  # ELU
    Activation.SELU: lambda x, training: F.selu(x),  # SELU
    Activation.GLU: lambda x, training: F.glu(x, dim=-1),  # GLU，输出维度减半
}


def get_activation(act):  # 定义获取激活函数枚举方法
    if isinstance(act, Activation):  # 已经是枚举
        return act  # 直接返回
    try:  # 尝试按名称解析
        return Activation(str(act).lower().replace('_', '').replace('-', ''))  # 返回对应枚举
    except ValueError:  # 名称不在枚举中
        names = ', '.join(a.value for a in Activation)  # 可选名称
        raise ValueError(f"activation should be one of {names}, got {act!r}") from None  # 抛出数值错误


def kl_to_standard_normal(mu, logvar):  # 定义到标准正态先验的KL散度
    return -0.5 * torch.sum(1 + logvar - mu.pow(2) - logvar.exp(), dim=-1).mean()  # 按批次求均值


def reparameterize(mu, logvar, training):  # 定义重参数化方法
    if training:  # 如果处于训练模式
        std = torch.exp(0.5 * logvar)  # 计算标准差
        eps = torch.randn_like(std)  # 生成随机噪声
        return mu + (eps * std)  # 返回重参数化结果
    else:  # 如果处于测试模式
        return mu  # 直接返回均值


class MLPEncoder(nn.Module):  # 定义多层感知机变分编码器类
    '''
        Amortized variational distribution q(theta | bow): a shared two layer
        trunk followed by two linear heads for the mean and log-variance of
        the topic logits. The mode is passed explicitly to ``forward``.
    '''
    def __init__(self, vocab_size, num_topic, hidden_dim, dropout, activation='relu'):  # 初始化方法
        super().__init__()  # 调用父类初始化

        if not 0 <= dropout < 1:  # dropout率非法
            raise ValueError(f"dropout should be in [0, 1), got {dropout}")  # 抛出数值错误

        self.activation = get_activation(activation)  # 激活函数枚举
        self.theta_act = ACTIVATIONS[self.activation]  # 激活函数
        self.dropout = dropout  # dropout率

        # GLU halves its input, so the trunk layers produce twice the width  # GLU会将输入减半，因此主干层输出两倍宽度
        out_dim = 2 * hidden_dim if self.activation is Activation.GLU else hidden_dim  # 主干层输出维度

        self.fc11 = nn.Linear(vocab_size, out_dim)  # 第一层全连接层
        self.fc12 = nn.Linear(hidden_dim, out_dim)  # 第二层全连接层
        self.fc21 = nn.Linear(hidden_dim, num_topic, bias=True)  # 均值输出层
        self.fc22 = nn.Linear(hidden_dim, num_topic, bias=True)  # 方差输出层

    def forward(self, x, training=False):  # 定义前向传播方法
        e1 = self.theta_act(self.fc11(x), training)  # 第一层全连接并激活
        e1 = self.theta_act(self.fc12(e1), training)  # 第二层全连接并激活
        if self.dropout > 0:  # 如果dropout率大于0
            e1 = F.dropout(e1, p=self.dropout, training=training)  # 应用dropout
        mu = self.fc21(e1)  # 计算均值
        logvar = self.fc22(e1)  # 计算对数方差
        kl_theta = kl_to_standard_normal(mu, logvar)  # 计算KL散度
        return mu, logvar, kl_theta  # 返回均值、对数方差、KL散度
