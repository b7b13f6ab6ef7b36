import logging  # 导入日志模块


LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")  # 有效日志级别


class Logger:  # 定义日志记录器类
    '''
        Thin wrapper over a named ``logging`` logger with a single stream
        handler; repeated construction reuses the handler already attached.
    '''
    def __init__(self, level, name='ETM'):  # 初始化方法
        self.logger = logging.getLogger(name)  # 获取命名日志记录器
        self.set_level(level)  # 设置日志级别
        if not self.logger.handlers:  # 还没有处理器
            sh = logging.StreamHandler()  # 创建流处理器
            sh.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))  # 设置格式化器
            self.logger.addHandler(sh)  # 添加处理器
        self.logger.propagate = False  # 禁止日志传播

    def debug(self, message):  # 调试日志方法
        self.logger.debug(message)  # 记录调试日志

    def info(self, message):  # 信息日志方法
        self.logger.info(message)  # 记录信息日志

    def warning(self, message):  # 警告日志方法
        self.logger.warning(message)  # 记录警告日志

    def set_level(self, level):  # 设置日志级别方法
        if isinstance(level, str):  # 名称形式的级别
            level = level.upper()  # 统一为大写
            if level not in LEVELS:  # 无效级别
                raise ValueError(f"level should be one of {', '.join(LEVELS)}, got {level!r}")  # 抛出数值错误
        self.logger.setLevel(level)  # 设置日志级别
